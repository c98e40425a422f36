# backend/eventasap/models/user.py

from sqlalchemy import Boolean, Column, Integer, String, Enum, Text
from .base import BaseModel
import enum

class UserType(str, enum.Enum):
    """Enumeration of the marketplace roles."""

    CLIENT = "CLIENT"
    VENDOR = "VENDOR"

class User(BaseModel):
    __tablename__ = "users"

    id            = Column(Integer, primary_key=True, index=True)
    email         = Column(String, unique=True, index=True, nullable=False)
    password      = Column(String, nullable=False)
    first_name    = Column(String, nullable=False)
    last_name     = Column(String, nullable=False)
    phone_number  = Column(String, nullable=True)
    user_type     = Column(Enum(UserType), nullable=False, default=UserType.CLIENT)
    # Vendors display their business name instead of their personal name
    business_name = Column(String, nullable=True)
    # Vendor profile, used by vendor search
    category      = Column(String, nullable=True, index=True)
    city          = Column(String, nullable=True)
    description   = Column(Text, nullable=True)
    is_active     = Column(Boolean, default=True)

    @property
    def display_name(self) -> str:
        if self.user_type == UserType.VENDOR and self.business_name:
            return self.business_name
        return f"{self.first_name} {self.last_name}".strip()
