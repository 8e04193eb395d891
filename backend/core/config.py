from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

DEV_JWT_SECRET = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    # 실행 환경: development / production (production이면 쿠키 secure 적용)
    environment: str = "development"
    log_level: str = "INFO"

    # JWT 설정 — 세션 토큰은 7일 유효
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # 세션 쿠키 이름 (프론트엔드와 맞춰야 함)
    cookie_name: str = "token"

    # Redis (로그인/회원가입 rate limit 카운터)
    redis_url: str = "redis://redis:6379"

    # CORS 허용 origin + 서버 포트
    frontend_url: str = "http://localhost:3000"
    port: int = 5000

    # 프록시 뒤에 있을 때만 X-Forwarded-For 신뢰
    trust_proxy: bool = False

    # Rate limit: 로그인 15분 5회, 회원가입 1시간 3회
    login_rate_limit: int = 5
    login_rate_window_seconds: int = 15 * 60
    register_rate_limit: int = 3
    register_rate_window_seconds: int = 60 * 60

    # 요청 바디 최대 크기 (10MB)
    max_body_bytes: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(
        # config.py -> core -> backend -> 루트 아래의 .env 찾기
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,     # 환경변수 대소문자 무시
        extra="ignore",
    )

    # Database
    database_url: str
    db_echo: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        # 운영 환경에서 개발용 시크릿으로 기동하는 것을 막는다
        if self.is_production and self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production")
        return self


# 싱글톤 인스턴스 — 앱 어디서든 import해서 사용
settings = Settings()
