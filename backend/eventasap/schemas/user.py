# backend/eventasap/schemas/user.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum


class UserType(str, Enum):
    """Roles supported by the API."""

    CLIENT = "CLIENT"
    VENDOR = "VENDOR"


class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    # Make role optional for requests; default to CLIENT if not provided.
    user_type: UserType = UserType.CLIENT
    business_name: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    city: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)


class UserCreate(UserBase):
    # bcrypt only uses the first 72 bytes
    password: str = Field(min_length=8, max_length=72)


class UserResponse(UserBase):
    id: int
    is_active: bool

    model_config = {
        "from_attributes": True
    }


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
