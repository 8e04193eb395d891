import re
from datetime import datetime
from typing import Generic, TypeVar
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

T = TypeVar("T")

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

# bcrypt가 받는 최대 길이 (문자 수가 아니라 UTF-8 바이트 기준)
BCRYPT_MAX_BYTES = 72


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return v


class UserCreate(BaseModel):
    """회원가입 요청 바디"""
    username: str = Field(..., min_length=3, max_length=30, description="사용자 아이디")
    email: EmailStr = Field(..., description="사용자 이메일")
    password: str = Field(..., min_length=8, max_length=72, description="비밀번호 (8자 이상)")

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not re.search(r"[a-zA-Z]", v):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one number")
        return _check_password_bytes(v)


class LoginRequest(BaseModel):
    """로그인 요청 바디 — 이메일 + 비밀번호"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return _check_password_bytes(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class UserPublic(BaseModel):
    """클라이언트에 돌려주는 유저 정보 (비밀번호 해시 필드 자체가 없음!)"""
    id: str
    username: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserPublic):
    """/me 응답용 — 가입 시각 포함"""
    created_at: datetime = Field(serialization_alias="createdAt")


class MessageData(BaseModel):
    message: str


class UserData(BaseModel):
    user: UserProfile


class AuthData(BaseModel):
    """register / login / verify 응답의 data 부분"""
    message: str
    user: UserPublic


class HealthData(BaseModel):
    status: str = "ok"
    message: str = "Server is running"


class SuccessResponse(BaseModel, Generic[T]):
    """성공 응답 공통 형태: {"success": true, "data": {...}}"""
    success: bool = True
    data: T
