"""Account Schemas — request/response models for register, login and change-password.

Invariants:
    - Validation runs before any store access (Pydantic at the route boundary)
    - RegisterRequest.username: 3-255 chars; passwords >= 6 chars where newly chosen
    - New passwords fit bcrypt's 72-byte input limit (checked in bytes, not chars)

Design Decisions:
    - LoginRequest does not enforce length rules: a wrong-shaped password is just
      invalid credentials, not a validation error
"""

from pydantic import BaseModel, Field, field_validator

_BCRYPT_MAX_BYTES = 72


def _check_bcrypt_length(v: str) -> str:
    if len(v.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {_BCRYPT_MAX_BYTES} bytes")
    return v


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_bcrypt_length(v)


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    username: str
    old_password: str
    new_password: str = Field(min_length=6)

    @field_validator("new_password")
    @classmethod
    def new_password_fits_bcrypt(cls, v: str) -> str:
        return _check_bcrypt_length(v)


class TokenResponse(BaseModel):
    message: str
    token: str


class MessageResponse(BaseModel):
    message: str
