import logging
from typing import Optional, Any, List
from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto, DuplicateUserError

logger = logging.getLogger(__name__)

USER_FIELDS = [name for name in UserDto.__dataclass_fields__ if name != "id"]


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(id=user.id, **{name: getattr(user, name) for name in USER_FIELDS})

    def _first(self, statement) -> Optional[UserDto]:
        user = self.session.exec(statement).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: int) -> Optional[UserDto]:
        return self._first(select(User).where(User.id == user_id))

    def get_by_email(self, email: str) -> Optional[UserDto]:
        if not email:
            return None
        return self._first(select(User).where(func.lower(User.email) == email.lower()))

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        if not phone:
            return None
        return self._first(select(User).where(User.phone_number == phone))

    def get_by_social(self, provider: str, social_id: str) -> Optional[UserDto]:
        return self._first(
            select(User).where(User.social_provider == provider, User.social_provider_id == social_id)
        )

    def exists_by_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def exists_by_phone(self, phone: str) -> bool:
        return self.get_by_phone(phone) is not None

    def _clashing_fields(self, user: UserDto) -> List[str]:
        fields = []
        if user.email and self.exists_by_email(user.email):
            fields.append("email")
        if user.phone_number and self.exists_by_phone(user.phone_number):
            fields.append("phone")
        return fields

    def create(self, user: UserDto) -> UserDto:
        values = {name: getattr(user, name) for name in USER_FIELDS}
        # Let the table defaults fill unset timestamps
        values = {k: v for k, v in values.items() if not (k in ("created_at", "updated_at") and v is None)}
        record = User(**values)
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            fields = self._clashing_fields(user)
            logger.warning(f"User insert rejected, duplicate fields: {fields}")
            raise DuplicateUserError(fields)
        self.session.refresh(record)
        return self._to_dto(record)

    def update_fields(self, user_id: int, **fields: Any) -> None:
        if not fields:
            return
        unknown = set(fields) - set(USER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")
        self.session.connection().execute(update(User).where(User.id == user_id).values(**fields))
        self.session.commit()

    def increment_failed_attempts(self, user_id: int) -> int:
        # Single UPDATE so concurrent failures are never lost
        self.session.connection().execute(
            update(User)
            .where(User.id == user_id)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
        )
        self.session.commit()
        attempts = self.session.exec(select(User.failed_login_attempts).where(User.id == user_id)).first()
        return attempts or 0
