from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from core.config import settings
from core.dependencies import init_connections, close_connections
from core.database import engine, check_database
from core.errors import register_exception_handlers
from core.logger import get_logger
from core.metrics import BodySizeLimitMiddleware, RequestMetricsMiddleware, metrics_store
from router import auth
from schemas.auth import HealthData, SuccessResponse

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # DB / Redis 중 하나라도 연결 실패하면 기동 자체를 중단
    await check_database()
    logger.info("Database connected")
    try:
        await init_connections()
        yield
    finally:
        await close_connections()
        # DB 연결 풀 정리
        await engine.dispose()


app = FastAPI(
    title="Auth Service",
    description="쿠키 세션 기반 회원가입/로그인 API",
    version="0.1.0",
    lifespan=lifespan
)

# 미들웨어 등록 (나중에 등록한 것이 바깥쪽)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,   # 세션 쿠키 전송 허용
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])


@app.get("/api/health", response_model=SuccessResponse[HealthData], tags=["Monitoring"])
async def health():
    return SuccessResponse(data=HealthData())


@app.get("/api/metrics", tags=["Monitoring"])
async def get_metrics():
    """실시간 메트릭 조회 — 총 요청 수, 응답 시간, 상태코드별 분포"""
    return SuccessResponse[dict](data=metrics_store.summary())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
