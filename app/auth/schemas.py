from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from app.auth.models import UserRole
from app.auth.password import check_password_strength


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    password_confirm: Optional[str] = None
    name: str = Field(..., min_length=2, max_length=100)
    role: UserRole = UserRole.ORGANISATEUR

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v)

    @field_validator("role")
    @classmethod
    def no_admin_signup(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Rôle invalide")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password_confirm is not None and self.password_confirm != self.password:
            raise ValueError("Les mots de passe ne correspondent pas")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class UserOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str
    email_verified_at: Optional[datetime] = None
    is_premium: bool = False
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class EmailRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str
    confirm_password: Optional[str] = None

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.new_password:
            raise ValueError("Les mots de passe ne correspondent pas")
        return self


class RoleChangeRequest(BaseModel):
    role: UserRole

    @field_validator("role")
    @classmethod
    def no_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Rôle invalide")
        return v


class MessageResponse(BaseModel):
    msg: str
