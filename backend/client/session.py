import logging
from dataclasses import dataclass

import httpx

from client.api import AuthApiClient

logger = logging.getLogger("client.session")

# 로그인해야 볼 수 있는 화면 / 로그인하면 볼 필요 없는 화면
PROTECTED_PATHS = ("/dashboard",)
GUEST_ONLY_PATHS = ("/login", "/register")


@dataclass
class ActionResult:
    success: bool
    data: dict | None = None
    error: dict | None = None


class SessionContext:
    """
    클라이언트 측 세션 캐시 — "로그인 상태인가, 누구인가"

    서버의 /verify 응답으로만 갱신한다. 토큰 자체는 httpOnly 쿠키라서 여기서는 볼 수 없다.
    """

    def __init__(self, api: AuthApiClient):
        self.api = api
        self.user: dict | None = None
        self.is_authenticated = False
        self.is_loading = True

    def _set_user(self, user: dict | None) -> None:
        self.user = user
        self.is_authenticated = user is not None

    async def check_auth(self) -> bool:
        """verify 호출로 캐시 갱신 — 어떤 실패든 로그아웃 상태로 둔다"""
        self.is_loading = True
        try:
            response = await self.api.verify()
            if response.get("success"):
                self._set_user(response["data"]["user"])
            else:
                self._set_user(None)
        except httpx.HTTPError:
            logger.warning("Session check failed", exc_info=True)
            self._set_user(None)
        finally:
            self.is_loading = False
        return self.is_authenticated

    async def login(self, email: str, password: str) -> ActionResult:
        try:
            response = await self.api.login(email, password)
        except httpx.HTTPError:
            logger.warning("Login request failed", exc_info=True)
            return ActionResult(success=False, error={"message": "Login failed"})

        if response.get("success"):
            self._set_user(response["data"]["user"])
            return ActionResult(success=True, data=response["data"])
        return ActionResult(success=False, error=response.get("error"))

    async def register(self, username: str, email: str, password: str) -> ActionResult:
        """가입만 하고 로그인 상태는 바꾸지 않는다 (가입 후 로그인 화면으로)"""
        try:
            response = await self.api.register(username, email, password)
        except httpx.HTTPError:
            logger.warning("Register request failed", exc_info=True)
            return ActionResult(success=False, error={"message": "Registration failed"})

        if response.get("success"):
            return ActionResult(success=True, data=response["data"])
        return ActionResult(success=False, error=response.get("error"))

    async def logout(self) -> ActionResult:
        """서버 호출이 실패해도 로컬 상태는 항상 비운다"""
        try:
            await self.api.logout()
        except httpx.HTTPError:
            logger.warning("Logout request failed", exc_info=True)
            self._set_user(None)
            return ActionResult(success=False, error={"message": "Logout failed"})

        self._set_user(None)
        return ActionResult(success=True)

    def guard(self, path: str) -> str | None:
        """라우트 가드 — 이동해야 할 경로를 반환, 그대로 보여줘도 되면 None"""
        if self.is_loading:
            return None
        if path.startswith(PROTECTED_PATHS) and not self.is_authenticated:
            return "/login"
        if path in GUEST_ONLY_PATHS and self.is_authenticated:
            return "/dashboard"
        return None
