from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Response
from jose import ExpiredSignatureError, JWSError, JWTError, jws, jwt

from core.config import settings
from core.errors import AppError, ErrorKind


# === 비밀번호 해싱 (bcrypt 직접 사용) ===

def hash_password(password: str) -> str:
    """비밀번호 평문을 bcrypt로 해싱 (salt는 매번 새로 생성)"""
    # 72바이트 초과는 bcrypt가 ValueError를 낸다. 요청 스키마가 바이트 길이로 먼저 거른다.
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(plain_password: str, hashed_password: str) -> bool:
    """평문과 해시 비교 — bcrypt.checkpw는 최종 digest를 상수 시간으로 비교한다"""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # 손상된 해시
        return False


# 존재하지 않는 이메일로 로그인할 때도 bcrypt를 한 번 돌려 응답 시간을 맞춘다
DUMMY_HASH = hash_password("timing-equalization-dummy")


# === 세션 토큰 (JWT) ===

@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    서명된 세션 토큰 발급/검증

    - 서명 키는 생성 시 한 번 받고 이후 바뀌지 않는다
    - 서버 측 폐기 목록은 없음 (로그아웃은 쿠키만 지운다)
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_days: int = 7):
        self._secret = secret
        self._algorithm = algorithm
        self.expire_days = expire_days

    @property
    def max_age_seconds(self) -> int:
        return self.expire_days * 24 * 60 * 60

    def issue(self, user_id: str, email: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(days=self.expire_days)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenPayload:
        """
        검증 성공 시 payload 반환, 실패 시 AppError 발생
          - TOKEN_MALFORMED: 토큰 구조/클레임이 잘못됨
          - TOKEN_BAD_SIGNATURE: 서명 불일치
          - TOKEN_EXPIRED: 만료
        """
        # 1. 구조 확인 (헤더/클레임 디코딩)
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            raise AppError(ErrorKind.TOKEN_MALFORMED)

        # 2. 서명 확인
        try:
            jws.verify(token, self._secret, algorithms=[self._algorithm])
        except JWSError:
            raise AppError(ErrorKind.TOKEN_BAD_SIGNATURE)

        # 3. 만료 + 클레임 확인
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise AppError(ErrorKind.TOKEN_EXPIRED)
        except JWTError:
            raise AppError(ErrorKind.TOKEN_MALFORMED)

        user_id = claims.get("userId")
        email = claims.get("email")
        if not isinstance(user_id, str) or not isinstance(email, str) or "exp" not in claims:
            raise AppError(ErrorKind.TOKEN_MALFORMED)

        return TokenPayload(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(claims.get("iat", 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )


# 프로세스 전역 인스턴스 — 기동 시 설정에서 한 번 생성
token_service = TokenService(
    secret=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
    expire_days=settings.jwt_expire_days,
)


# === 세션 쿠키 ===

def set_session_cookie(response: Response, token: str) -> None:
    """httpOnly + SameSite=Strict 쿠키로 토큰 전달 (JS에서 읽을 수 없음)"""
    response.set_cookie(
        settings.cookie_name,
        value=token,
        max_age=token_service.max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
