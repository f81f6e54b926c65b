"""
Single-use password reset tokens for both account types.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, Index

from ehgezli.db.base import Base, TimestampMixin


class PasswordResetToken(Base, TimestampMixin):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    account_type = Column(String(20), nullable=False)  # user, restaurant
    account_id = Column(Integer, nullable=False)
    token = Column(String(128), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("account_type IN ('user', 'restaurant')", name="check_reset_account_type"),
        Index("ix_password_reset_account", "account_type", "account_id"),
    )
