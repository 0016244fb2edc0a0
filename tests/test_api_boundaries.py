"""
Tests for routers/analyze.py and routers/generate.py

Test Coverage:
- POST /api/analyze success, fallback, validation and failures
- POST /api/generate success, validation and upstream status mapping
- Missing credential is reported before input validation
- Error bodies are {"error", "code"}
"""

import pytest
from fastapi.testclient import TestClient

from monkeygen.main import app
from monkeygen.services.openai_images import (
    FALLBACK_STYLE,
    OpenAIImageService,
    get_openai_service,
)
from tests.conftest import GENERATED_B64, FakeOpenAI


@pytest.fixture
def client_for():
    """Build a TestClient whose OpenAI service talks to the given fake."""

    def build(settings, fake: FakeOpenAI) -> TestClient:
        service = OpenAIImageService(config=settings, transport=fake.transport)
        app.dependency_overrides[get_openai_service] = lambda: service
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════════════════════
# /api/analyze
# ═══════════════════════════════════════════════════════════════════════════


class TestAnalyzeEndpoint:
    def test_success(self, client_for, test_settings, fake_openai, png_b64):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/analyze", json={"imageBase64": png_b64, "mimeType": "image/png"})

        assert response.status_code == 200
        assert response.json() == {"styleDescription": "flat cel-shaded cartoon"}

    def test_data_url_prefix_stripped(self, client_for, test_settings, fake_openai, png_b64):
        client = client_for(test_settings, fake_openai)

        response = client.post(
            "/api/analyze", json={"imageBase64": f"data:image/png;base64,{png_b64}"}
        )

        assert response.status_code == 200
        url = fake_openai.chat_payload()["messages"][0]["content"][0]["image_url"]["url"]
        assert url == f"data:image/png;base64,{png_b64}"

    def test_empty_answer_falls_back(self, client_for, test_settings, png_b64):
        client = client_for(test_settings, FakeOpenAI(style=""))

        response = client.post("/api/analyze", json={"imageBase64": png_b64})

        assert response.json()["styleDescription"] == FALLBACK_STYLE

    def test_missing_image(self, client_for, test_settings, fake_openai):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/analyze", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "No image provided", "code": "invalid_input"}
        assert fake_openai.chat_requests == []

    def test_invalid_base64_rejected_before_upstream(self, client_for, test_settings, fake_openai):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/analyze", json={"imageBase64": "data:image/png;base64,!!!"})

        assert response.status_code == 400
        assert response.json() == {"error": "Image is not valid base64", "code": "invalid_input"}
        assert fake_openai.chat_requests == []

    def test_upstream_failure(self, client_for, test_settings, png_b64):
        client = client_for(test_settings, FakeOpenAI(analyze_status=401))

        response = client.post("/api/analyze", json={"imageBase64": png_b64})

        assert response.status_code == 500
        assert response.json() == {"error": "vision model unavailable", "code": "upstream_error"}

    def test_not_configured_checked_first(self, client_for, unconfigured_settings, fake_openai):
        """Without a key the answer is not_configured even for an empty body"""
        client = client_for(unconfigured_settings, fake_openai)

        response = client.post("/api/analyze", json={})

        assert response.status_code == 500
        assert response.json() == {
            "error": "OPENAI_API_KEY not set in environment variables",
            "code": "not_configured",
        }
        assert fake_openai.chat_requests == []


# ═══════════════════════════════════════════════════════════════════════════
# /api/generate
# ═══════════════════════════════════════════════════════════════════════════


class TestGenerateEndpoint:
    def test_success(self, client_for, test_settings, fake_openai, png_b64):
        client = client_for(test_settings, fake_openai)

        response = client.post(
            "/api/generate",
            json={"imageBase64": png_b64, "mimeType": "image/png", "prompt": "wearing a red beanie"},
        )

        assert response.status_code == 200
        assert response.json() == {"b64": GENERATED_B64}
        assert b"wearing a red beanie" in fake_openai.edit_prompt()

    def test_url_result(self, client_for, test_settings, png_b64):
        fake = FakeOpenAI(edit_body={"data": [{"url": "https://img.test/out.png"}]})
        client = client_for(test_settings, fake)

        response = client.post("/api/generate", json={"imageBase64": png_b64, "prompt": "p"})

        assert response.json() == {"url": "https://img.test/out.png"}

    @pytest.mark.parametrize(
        "body",
        [{}, {"prompt": "p"}, {"imageBase64": "QUFBQQ=="}, {"imageBase64": "QUFBQQ==", "prompt": ""}],
    )
    def test_missing_fields(self, client_for, test_settings, fake_openai, body):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/generate", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing imageBase64 or prompt", "code": "invalid_input"}
        assert fake_openai.edit_requests == []

    def test_invalid_base64(self, client_for, test_settings, fake_openai):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/generate", json={"imageBase64": "!!!", "prompt": "p"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
        assert fake_openai.edit_requests == []

    @pytest.mark.parametrize(
        "upstream, status, code, message",
        [
            (401, 401, "unauthorized", "Invalid API key or no access to gpt-image-1"),
            (429, 429, "rate_limited", "Rate limit hit, wait a moment and retry"),
            (400, 400, "content_policy", "Prompt rejected by content policy, try different traits"),
            (500, 500, "upstream_error", "upstream said 500"),
            (418, 500, "upstream_error", "upstream said 418"),
        ],
    )
    def test_status_mapping(self, client_for, test_settings, png_b64, upstream, status, code, message):
        client = client_for(test_settings, FakeOpenAI(edit_failures={1: upstream}))

        response = client.post("/api/generate", json={"imageBase64": png_b64, "prompt": "p"})

        assert response.status_code == status
        assert response.json() == {"error": message, "code": code}

    def test_no_image_in_response(self, client_for, test_settings, png_b64):
        client = client_for(test_settings, FakeOpenAI(edit_body={"data": []}))

        response = client.post("/api/generate", json={"imageBase64": png_b64, "prompt": "p"})

        assert response.status_code == 500
        assert response.json() == {"error": "No image in response", "code": "no_image"}

    def test_not_configured_checked_first(self, client_for, unconfigured_settings, fake_openai):
        client = client_for(unconfigured_settings, fake_openai)

        response = client.post("/api/generate", json={})

        assert response.status_code == 500
        assert response.json()["code"] == "not_configured"
        assert fake_openai.edit_requests == []


class TestAppRoutes:
    def test_root(self):
        response = TestClient(app).get("/")
        assert response.json()["name"] == "MonkeyGen API"

    def test_malformed_body_is_invalid_input(self, client_for, test_settings, fake_openai):
        client = client_for(test_settings, fake_openai)

        response = client.post("/api/analyze", json={"imageBase64": 123})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
