from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Callable, Dict, Any

from ..ports.user_repo import UserRepository, UserDto
from ..results import ErrorKind, Failure, Profile, ProfileResult
from ...utils import utcnow, external_user_id

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _farm_details() -> Dict[str, Any]:
    # Placeholder until farms are stored
    business_hours = {day: {"open": "08:00", "close": "17:00", "is_open": True} for day in WEEKDAYS}
    business_hours["saturday"] = {"open": "08:00", "close": "14:00", "is_open": True}
    business_hours["sunday"] = {"open": None, "close": None, "is_open": False}
    return {
        "farm_name": "Green Valley Farm",
        "farm_type": "crop_farm",
        "farm_size": 5.5,
        "farm_size_unit": "hectares",
        "years_in_business": 10,
        "description": "We practice organic farming methods...",
        "specialization": ["vegetables", "fruits"],
        "certifications": [],
        "business_hours": business_hours,
        "farm_gallery": [],
        "delivery_options": {
            "self_pickup": True,
            "home_delivery": True,
            "delivery_radius": 50,
            "delivery_fee": 15000,
            "free_delivery_threshold": 100000,
        },
    }


@dataclass
class ProfileService:
    user_repo: UserRepository
    clock: Callable[[], datetime] = utcnow

    def get_profile(self, user_id: int) -> ProfileResult:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            return Failure(ErrorKind.USER_NOT_FOUND, "User not found")
        return Profile(user=user, data=self._build(user))

    def _build(self, user: UserDto) -> Dict[str, Any]:
        now = self.clock()
        data: Dict[str, Any] = {
            "user_id": external_user_id(user.id),
            "email": user.email,
            "phone": user.phone_number,
            "full_name": user.full_name,
            "user_type": user.user_type,
            "profile_picture": user.profile_picture,
            "profile_complete": user.is_profile_complete(),
            "location": {
                "province": user.province,
                "city": user.city,
                "district": user.district,
                "detailed_address": user.detailed_address,
                "postal_code": user.postal_code,
                "latitude": user.latitude,
                "longitude": user.longitude,
            },
            "verification_status": {
                "email_verified": user.is_email_verified,
                "phone_verified": user.is_phone_verified,
                "business_verified": False,
                "verified_badge": False,
                "verified_at": None,
            },
            "stats": {
                "total_products": 0,
                "total_orders": 0,
                "total_sales": 0,
                "rating": 0.0,
                "reviews_count": 0,
                "followers_count": 0,
                "response_rate": 0,
                "response_time": "N/A",
                "join_date": _iso(user.created_at or now),
            },
            "preferences": {
                "language": "en",
                "currency": "IDR",
                "timezone": "Asia/Jakarta",
                "notifications": {
                    "push_enabled": True,
                    "email_enabled": True,
                    "sms_enabled": False,
                    "order_updates": True,
                    "messages": True,
                    "promotions": False,
                    "price_alerts": True,
                    "new_followers": True,
                },
                "privacy": {
                    "show_phone": True,
                    "show_email": False,
                    "show_location": True,
                    "allow_messages": "everyone",
                },
            },
            "payment_info": {
                "wallet_balance": 0,
                "pending_balance": 0,
                "bank_account_linked": False,
                "preferred_payment_method": "bank_transfer",
            },
            "created_at": _iso(user.created_at or now),
            "updated_at": _iso(user.updated_at or now),
            "last_active_at": _iso(user.last_login_at or now),
        }
        if (user.user_type or "").lower() == "producer":
            data["farm_details"] = _farm_details()
        return data
