"""AppUser model - staff users and their authority role."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK, enum_values


class UserRole(enum.Enum):
    """
    User roles, ordered by approval authority.

    SALES users create quotations but cannot approve any of them.
    ADMIN is a superuser that satisfies every approval level.
    """
    SALES = 'sales'
    MANAGER = 'manager'
    SENIOR_MANAGER = 'senior_manager'
    DIRECTOR = 'director'
    ADMIN = 'admin'

    @property
    def rank(self):
        return _ROLE_RANKS[self]

    @property
    def is_approver(self):
        return self.rank > 0


_ROLE_RANKS = {
    UserRole.SALES: 0,
    UserRole.MANAGER: 1,
    UserRole.SENIOR_MANAGER: 2,
    UserRole.DIRECTOR: 3,
    UserRole.ADMIN: 4,
}


class AppUser(Base):
    """AppUser model - consultancy staff."""

    __tablename__ = 'app_user'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(200), nullable=True)
    role = Column(
        SQLEnum(UserRole, name='user_role', native_enum=False, values_callable=enum_values),
        nullable=False,
        default=UserRole.SALES,
    )
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role.value}')>"

    @property
    def display_name(self):
        """Name used in emails and documents."""
        return self.full_name or self.email
