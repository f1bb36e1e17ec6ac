from typing import Protocol


class Notifier(Protocol):
    def send(self, destination: str, code: str, channel: str) -> None:
        ...
