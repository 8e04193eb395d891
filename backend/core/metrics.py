import time
from collections import defaultdict
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from core.errors import ErrorKind, error_response
from core.logger import get_logger, generate_request_id, request_id_var

logger = get_logger("access")

# 응답에 항상 붙이는 보안 헤더
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


class MetricsStore:
    """인메모리 요청 집계 (프로세스 단위, 재시작 시 초기화)"""

    def __init__(self):
        self.reset()

    def reset(self):
        self.total_requests = 0
        self.by_status = defaultdict(int)     # {200: 42, 401: 3, 429: 1}
        self.by_path = defaultdict(int)       # {"POST /api/auth/login": 12}
        self.total_duration_ms = 0.0

    def record(self, method: str, path: str, status: int, duration_ms: float):
        self.total_requests += 1
        self.by_status[status] += 1
        self.by_path[f"{method} {path}"] += 1
        self.total_duration_ms += duration_ms

    def summary(self) -> dict:
        avg = round(self.total_duration_ms / self.total_requests, 1) if self.total_requests else 0
        return {
            "total_requests": self.total_requests,
            "avg_response_time_ms": avg,
            "by_status": dict(self.by_status),
            "by_path": dict(self.by_path),
        }


# 싱글톤 인스턴스
metrics_store = MetricsStore()

# 라우트에 매칭되지 않은 요청(404 스캔 등)은 한 버킷으로 모은다
UNMATCHED_PATH = "<unmatched>"


def route_label(request: Request) -> str:
    """메트릭 키로 쓸 경로 — 실제 URL이 아니라 매칭된 라우트 템플릿"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_PATH


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """
    모든 HTTP 요청에 적용되는 미들웨어

    1. 요청마다 request_id 부여 (X-Request-ID 응답 헤더)
    2. 응답 시간 측정 + 메트릭 집계
    3. JSON 접근 로그 출력
    4. 보안 헤더 추가
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = generate_request_id()
        request_id_var.set(req_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        metrics_store.record(
            method=request.method,
            path=route_label(request),
            status=response.status_code,
            duration_ms=duration_ms,
        )

        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms",
            extra={"extra_data": {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 1),
                "client": request.client.host if request.client else None,
            }}
        )

        response.headers["X-Request-ID"] = req_id
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Content-Length가 제한을 넘는 요청은 핸들러까지 가지 않고 413으로 거절"""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next) -> Response:
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            return error_response(ErrorKind.PAYLOAD_TOO_LARGE, "Request body too large")
        return await call_next(request)
