"""
헬스체크 & 메트릭 & 공통 미들웨어 테스트
"""


def test_헬스체크(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"status": "ok", "message": "Server is running"},
    }


def test_응답에_request_id와_보안_헤더(client):
    response = client.get("/api/health")
    assert len(response.headers["x-request-id"]) == 8
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"


def test_메트릭_조회(client):
    client.get("/api/health")
    client.get("/api/auth/me")

    response = client.get("/api/metrics")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_requests"] == 2
    assert data["by_status"] == {"200": 1, "401": 1}
    assert data["by_path"]["GET /api/auth/me"] == 1
    assert "avg_response_time_ms" in data


def test_없는_경로는_하나의_버킷으로_집계(client):
    assert client.get("/wp-admin/setup.php").status_code == 404
    assert client.get("/random/path/12345").status_code == 404

    by_path = client.get("/api/metrics").json()["data"]["by_path"]
    assert by_path["GET <unmatched>"] == 2
    assert not any("wp-admin" in key or "random" in key for key in by_path)


def test_너무_큰_바디는_413(client):
    response = client.post(
        "/api/auth/login",
        content=b"{}",
        headers={"Content-Type": "application/json", "Content-Length": str(20 * 1024 * 1024)},
    )
    assert response.status_code == 413
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
