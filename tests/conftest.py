"""Shared fixtures: test images, settings and a fake OpenAI API."""

import base64
import io
import json

import httpx
import pytest
from PIL import Image

from monkeygen.config import Settings
from monkeygen.models.schemas import BaseImage


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


def make_image_bytes(fmt: str = "PNG", color=(150, 90, 40), size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


GENERATED_PNG = make_image_bytes(color=(10, 200, 120))
GENERATED_B64 = base64.b64encode(GENERATED_PNG).decode("utf-8")


class FakeOpenAI:
    """
    httpx MockTransport handler standing in for the OpenAI API.

    ``edit_failures`` maps a 1-based edit call number to the status code
    that call should fail with.
    """

    def __init__(
        self,
        style: str | None = "flat cel-shaded cartoon",
        analyze_status: int = 200,
        edit_failures: dict[int, int] | None = None,
        edit_body: dict | None = None,
    ):
        self.style = style
        self.analyze_status = analyze_status
        self.edit_failures = edit_failures or {}
        self.edit_body = edit_body
        self.chat_requests: list[httpx.Request] = []
        self.edit_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            self.chat_requests.append(request)
            if self.analyze_status != 200:
                return httpx.Response(
                    self.analyze_status,
                    json={"error": {"message": "vision model unavailable"}},
                )
            return httpx.Response(
                200,
                json={"choices": [{"message": {"role": "assistant", "content": self.style}}]},
            )

        if request.url.path.endswith("/images/edits"):
            self.edit_requests.append(request)
            status = self.edit_failures.get(len(self.edit_requests))
            if status:
                return httpx.Response(status, json={"error": {"message": f"upstream said {status}"}})
            return httpx.Response(
                200,
                json=self.edit_body if self.edit_body is not None else {"data": [{"b64_json": GENERATED_B64}]},
            )

        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"data": []})

        return httpx.Response(404, json={"error": {"message": "not found"}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def chat_payload(self, number: int = 1) -> dict:
        return json.loads(self.chat_requests[number - 1].content)

    def edit_prompt(self, number: int = 1) -> bytes:
        return self.edit_requests[number - 1].content


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def png_b64(png_bytes):
    return base64.b64encode(png_bytes).decode("utf-8")


@pytest.fixture
def base_image(png_bytes):
    return BaseImage(data=png_bytes, media_type="image/png")


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        openai_base_url="https://api.openai.test/v1",
        outputs_dir=tmp_path / "outputs",
    )


@pytest.fixture
def unconfigured_settings(tmp_path):
    return Settings(
        _env_file=None,
        openai_api_key=None,
        openai_base_url="https://api.openai.test/v1",
        outputs_dir=tmp_path / "outputs",
    )


@pytest.fixture
def fake_openai():
    return FakeOpenAI()
