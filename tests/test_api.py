import json
import time

import pytest
from fastapi.testclient import TestClient

from api.config import get_settings
from api.dependencies import (
    get_analyze_service,
    get_crop_advisor,
    get_crop_service,
    get_daily_limiter,
    get_image_processor,
    get_output_storage,
    get_redis_connector,
)
from api.main import app
from backend.utils import RedisConnector
from tests.helpers import chat_response, crop_reply, make_image

ANALYZE_REPLY = json.dumps(
    {
        "reason": "A calm horizon.",
        "details": "Horizon on the lower third.",
        "crop_params": {"x": 50, "y": 0, "width": 300, "height": 300},
    }
)


@pytest.fixture
def client(
    settings,
    crop_service,
    analyze_service,
    output_storage,
    daily_limiter,
    advisor,
    image_processor,
):
    app.dependency_overrides = {
        get_settings: lambda: settings,
        get_redis_connector: lambda: RedisConnector("redis://localhost:6379", enabled=False),
        get_crop_service: lambda: crop_service,
        get_analyze_service: lambda: analyze_service,
        get_output_storage: lambda: output_storage,
        get_daily_limiter: lambda: daily_limiter,
        get_crop_advisor: lambda: advisor,
        get_image_processor: lambda: image_processor,
    }
    yield TestClient(app)
    app.dependency_overrides = {}


def _image_file(name="cat.jpg", content_type="image/jpeg", data=None):
    return {"image": (name, data if data is not None else make_image(400, 300), content_type)}


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["vision_configured"] is True
    assert body["redis_connected"] is False
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Request-ID"]


def test_unknown_endpoint_uses_error_envelope(client):
    response = client.get("/api/nope", headers={"X-Request-ID": "req-404"})

    assert response.status_code == 404
    assert response.json() == {
        "error": {"code": "NOT_FOUND", "message": "API endpoint not found"},
        "request_id": "req-404",
    }


def test_crop_aesthetic(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(crop_reply())

    response = client.post("/api/crop/aesthetic", files=_image_file(), data={"language": "en"})

    assert response.status_code == 200
    body = response.json()
    assert body["crop_params"] == {"x": 10, "y": 20, "width": 200, "height": 150}
    download = client.get(body["output"]["download_url"])
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/jpeg"


def test_crop_aesthetic_without_image(client):
    response = client.post("/api/crop/aesthetic", data={"language": "en"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_IMAGE_FORMAT"


def test_crop_aesthetic_wrong_type(client):
    response = client.post(
        "/api/crop/aesthetic", files=_image_file("notes.txt", "text/plain", b"hello")
    )
    assert response.status_code == 400


def test_batch_aesthetic(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(crop_reply())
    files = [
        ("images", ("a.jpg", make_image(), "image/jpeg")),
        ("images", ("b.png", make_image(fmt="PNG"), "image/png")),
    ]

    response = client.post("/api/crop/batch-aesthetic", files=files, data={"language": "zh"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["success_count"] == 2


def test_public_crop_and_dedup(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(crop_reply())
    headers = {"Origin": "http://localhost:3000"}
    data = make_image(400, 300)

    first = client.post("/api/crop", files=_image_file(data=data), headers=headers)
    second = client.post("/api/crop", files=_image_file(data=data), headers=headers)

    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert first.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_public_crop_quota(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(crop_reply())
    for shade in range(3):
        ok = client.post("/api/crop", files=_image_file(data=make_image(color=(shade * 60, 9, 9))))
        assert ok.status_code == 200

    response = client.post("/api/crop", files=_image_file(data=make_image(color=(1, 2, 250))))

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "QUOTA_EXCEEDED"
    assert error["details"]["daily_usage"]["used"] == 3


def test_public_crop_times_out(client, settings, openai_client):
    settings.crop_service_timeout = 0.05

    def slow_reply(**kwargs):
        time.sleep(0.5)
        return chat_response(crop_reply())

    openai_client.chat.completions.create.side_effect = slow_reply

    response = client.post("/api/crop", files=_image_file())

    assert response.status_code == 504
    assert response.json()["error"]["code"] == "AI_TIMEOUT"


def test_public_crop_bad_origin(client):
    response = client.post(
        "/api/crop", files=_image_file(), headers={"Origin": "https://evil.example"}
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_crop_info(client):
    response = client.get("/api/crop")
    assert response.status_code == 200
    assert response.json()["features"]["deduplication"] is True


def test_analyze_contract(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(ANALYZE_REPLY)

    response = client.post(
        "/api/crop/analyze",
        files=_image_file(),
        data={"scene": "instagram-post"},
        headers={"X-Request-ID": "req-analyze"},
    )

    assert response.status_code == 200
    assert response.headers["X-Crop-API-Version"] == "1"
    assert response.headers["X-Prompt-Version"] == "v1.0"
    body = response.json()
    assert body["version"] == "1"
    assert body["metadata"]["source"] == "model"
    assert body["metadata"]["request_id"] == "req-analyze"


def test_analyze_bad_ratio(client):
    response = client.post("/api/crop/analyze", files=_image_file(), data={"ratio": "square"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PARAMS"
    assert response.headers["X-Crop-API-Version"] == "1"


def test_analyze_info(client):
    response = client.get("/api/crop/analyze")
    assert response.json()["contract"] == "v1"
    assert response.headers["X-Crop-API-Version"] == "1"


def test_download_missing_file(client):
    response = client.get("/api/download/missing.png")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_download_serves_stored_file(client, output_storage):
    output_storage.save("aesthetic_x.png", b"png-bytes")

    response = client.get("/api/download/aesthetic_x.png")

    assert response.status_code == 200
    assert response.content == b"png-bytes"
    assert response.headers["content-type"] == "image/png"


def test_download_rejects_encoded_traversal(client):
    response = client.get("/api/download/..%5Csecret.png")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PARAMS"


def test_history(client, output_storage):
    output_storage.save("aesthetic_1.jpg", b"abc")

    response = client.get("/api/history")

    assert response.status_code == 200
    assert response.json()["history"][0]["filename"] == "aesthetic_1.jpg"


def test_usage_status_does_not_consume(client):
    first = client.get("/api/usage-status").json()
    second = client.get("/api/usage-status", params={"language": "zh"}).json()

    assert first["status"] == "success"
    assert first["data"]["used"] == 0
    assert first["data"]["limit"] == 3
    assert second["data"]["used"] == 0
    assert "小时" in second["data"]["reset_in"]


def test_debug_requires_model_and_prompt(client):
    response = client.post("/api/analyze-debug", files=_image_file(), data={"model": "gpt-4o"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_debug_analysis(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response(
        f"```json\n{crop_reply()}\n```"
    )

    response = client.post(
        "/api/analyze-debug",
        files=_image_file(),
        data={"model": "gpt-4o-mini", "prompt": "Crop ${originalWidth}x${originalHeight}"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["crop_params"]["width"] == 200
    assert body["metadata"]["original_width"] == 400


def test_debug_analysis_failure(client, openai_client):
    openai_client.chat.completions.create.return_value = chat_response("no json here")

    response = client.post(
        "/api/analyze-debug",
        files=_image_file(),
        data={"model": "gpt-4o", "prompt": "Crop it"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["metadata"]["model"] == "gpt-4o"


def test_platforms(client):
    everything = client.get("/api/platforms").json()
    chinese = client.get("/api/platforms", params={"category": "chinese"}).json()

    assert "social" in everything["categories"]
    assert [p["scene"] for p in chinese["platforms"]] == ["wechat-avatar", "wechat-cover"]
    assert client.get("/api/platforms", params={"category": "retro"}).status_code == 400


def test_platform_lookup_and_validation(client):
    assert client.get("/api/platforms/tiktok").json()["ratio"] == "9:16"
    assert client.get("/api/platforms/unknown").status_code == 400

    result = client.post("/api/platforms/instagram-post/validate", json={"width": 1080, "height": 1080})
    assert result.json()["valid"] is True
    assert result.json()["is_recommended_size"] is True

    invalid = client.post("/api/platforms/instagram-post/validate", json={"width": 0, "height": 10})
    assert invalid.status_code == 400
    assert invalid.json()["error"]["code"] == "INVALID_PARAMS"
