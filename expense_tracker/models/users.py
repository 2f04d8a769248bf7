# expense_tracker/models/users.py
import enum
import uuid

from sqlalchemy import Column, DateTime, String, func

from expense_tracker.database import Base


# Closed set of roles, ordered user < approver < admin
class Role(str, enum.Enum):
    USER = "user"
    APPROVER = "approver"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]

    @property
    def display_name(self) -> str:
        return _ROLE_NAMES[self]

    @classmethod
    def parse(cls, value) -> "Role":
        """Return the Role for ``value``; raises ValueError for anything unknown."""
        if isinstance(value, cls):
            return value
        return cls((value or "").strip().lower())


_ROLE_RANKS = {Role.USER: 0, Role.APPROVER: 1, Role.ADMIN: 2}
_ROLE_NAMES = {Role.USER: "Basic User", Role.APPROVER: "Approver", Role.ADMIN: "Administrator"}


# Represents an account known to the identity provider; id is the provider subject
class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=Role.USER.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or (self.email or self.id)
