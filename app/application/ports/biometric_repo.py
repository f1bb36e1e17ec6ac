from dataclasses import dataclass
from typing import Protocol, Optional
from datetime import datetime


@dataclass
class BiometricDto:
    id: Optional[int]
    user_id: int
    device_id: str
    public_key: str
    biometric_type: str
    device_name: Optional[str] = None
    platform: str = "unknown"
    is_active: bool = True
    registered_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None


class BiometricRepository(Protocol):
    def get_by_device(self, device_id: str) -> Optional[BiometricDto]:
        ...

    def create(self, record: BiometricDto) -> BiometricDto:
        ...

    def touch(self, device_id: str, used_at: datetime) -> None:
        ...
