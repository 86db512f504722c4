from sqlalchemy import Boolean, Column, String, Integer, TIMESTAMP, Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.sql.expression import false, true
from app.database import Base

USER_ROLES = ("USER", "ADMIN")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(150), nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(SAEnum(*USER_ROLES, name="user_role"), nullable=False, default="USER", server_default="USER")

    # Flags
    is_active = Column(Boolean, default=True, server_default=true(), nullable=False)
    is_email_verified = Column(Boolean, default=False, server_default=false(), nullable=False)

    # Timestamps
    last_login = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    otp_records = relationship("EmailVerificationOtp", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"
