import httpx

DEFAULT_BASE_URL = "http://localhost:5000"


class AuthApiClient:
    """
    인증 API 클라이언트 (httpx.AsyncClient + 쿠키 저장소)

    - 세션 쿠키는 httpx 쿠키 저장소가 자동으로 보관/전송한다
    - 4xx/5xx 응답도 예외 대신 envelope dict 그대로 반환
      {"success": false, "error": {"message": ..., "code": ...}}
    - 네트워크 오류(httpx.TransportError)는 그대로 올라간다
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, http: httpx.AsyncClient | None = None):
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=10.0)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AuthApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        response = await self._http.request(method, f"/api/auth{path}", json=json)
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or "success" not in body:
            # envelope 형태가 아니면 클라이언트 쪽에서 동일한 형태로 맞춰준다
            return {
                "success": False,
                "error": {"message": f"Unexpected response ({response.status_code})", "code": "SERVER_ERROR"},
            }
        return body

    async def register(self, username: str, email: str, password: str) -> dict:
        return await self._request("POST", "/register", {"username": username, "email": email, "password": password})

    async def login(self, email: str, password: str) -> dict:
        return await self._request("POST", "/login", {"email": email, "password": password})

    async def logout(self) -> dict:
        return await self._request("POST", "/logout")

    async def verify(self) -> dict:
        return await self._request("GET", "/verify")

    async def me(self) -> dict:
        return await self._request("GET", "/me")
