"""
사용자(User) 및 로그인 이력(LoginHistory) 모델

목적: 인증 서비스가 관리하는 계정 정보와 로그인 접속지 이력
(위험도 평가 시 신규 접속지 판단에 사용)
"""

import uuid
from enum import Enum

from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Index,
    Uuid,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class UserRole(str, Enum):
    """사용자 역할"""

    CUSTOMER = "customer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """계정 상태"""

    ACTIVE = "active"
    SUSPENDED = "suspended"


class User(Base):
    """사용자 모델"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.CUSTOMER.value)
    status = Column(String(50), nullable=False, default=UserStatus.ACTIVE.value)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'admin')", name="check_user_role"),
        CheckConstraint(
            "status IN ('active', 'suspended')", name="check_user_status"
        ),
    )

    # 관계
    orders = relationship("Order", back_populates="user")
    cart = relationship("Cart", back_populates="user", uselist=False)
    login_history = relationship("LoginHistory", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value


class LoginHistory(Base):
    """로그인 이력 (원본 IP는 저장하지 않고 해시만 보관)"""

    __tablename__ = "login_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    ip_hash = Column(String(64), nullable=False)
    user_agent = Column(String(500), nullable=True)
    logged_in_at = Column(DateTime, nullable=False, default=utc_now)

    user = relationship("User", back_populates="login_history")

    __table_args__ = (
        Index("idx_login_history_user_time", "user_id", "logged_in_at"),
    )

    def __repr__(self):
        return f"<LoginHistory(user_id={self.user_id}, logged_in_at={self.logged_in_at})>"
