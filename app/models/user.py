from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from app.db.base import Base

USER_ROLES = ("ADMIN", "MANAGER", "ANALYST")


class User(Base):
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(191), unique=True,
                   nullable=False)  # <= 191, no index=True
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False, default="")
    role = Column(String(20), nullable=False,
                  default="MANAGER")  # ADMIN | MANAGER | ANALYST
    phone = Column(String(50), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    managed_orders = relationship("Order", back_populates="manager")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
