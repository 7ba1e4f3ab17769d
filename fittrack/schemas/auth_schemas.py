from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import date

from fittrack.enums import Gender


class ProfileFields(BaseModel):
    firstName: Optional[str] = Field(None, max_length=100)
    lastName: Optional[str] = Field(None, max_length=100)
    dateOfBirth: Optional[date] = None
    gender: Optional[Gender] = None
    weight: Optional[float] = Field(None, gt=0, le=700, description="Body weight in kg")
    height: Optional[float] = Field(None, gt=0, le=300, description="Height in cm")

    class Config:
        use_enum_values = True

    @validator('dateOfBirth')
    def validate_date_of_birth(cls, v):
        if v is not None and v > date.today():
            raise ValueError('Date of birth cannot be in the future')
        return v


class RegisterRequest(ProfileFields):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)

    @validator('username')
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username is required')
        return v

    @validator('email')
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError('Invalid email address')
        return v


class LoginRequest(BaseModel):
    """Either email or username identifies the account."""

    email: Optional[str] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=1)

    @property
    def login(self) -> Optional[str]:
        if self.email:
            return self.email.strip().lower()
        return self.username.strip() if self.username else None


class ProfileUpdateRequest(ProfileFields):
    email: Optional[str] = Field(None, min_length=3, max_length=255)


class PasswordChangeRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=6, max_length=128)
