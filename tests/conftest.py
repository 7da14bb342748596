"""Shared test fixtures for the micro APIs test suite."""

import io
import json
from collections.abc import Iterator
from pathlib import Path

import cv2
import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from microapis.api.app import create_app
from microapis.api.dependencies import Services, build_services
from microapis.utils.config import (
    AppConfig,
    OCRConfig,
    PincodeConfig,
    RemoteConfig,
    UploadConfig,
)

SAMPLE_TEXT = "Invoice total amount due 1250 rupees payable by March"


def encode(image: np.ndarray, fmt: str = "PNG") -> bytes:
    """Encode a numpy image as PNG or JPEG bytes."""
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format=fmt)
    return buf.getvalue()


class FakeTextApi:
    """Scripted stand-in for the remote text-completion API.

    Replies are chosen by the first keyword found in the prompt. A reply is
    a dict sent as JSON, an ``httpx.Response`` copied for each request, a
    callable taking the request, or an exception instance to raise. Prompts
    matching no keyword fail with a connection error.
    """

    def __init__(self) -> None:
        self.replies: dict[str, object] = {}
        self.prompts: list[str] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        prompt = json.loads(request.content)["messages"][0]["content"]
        self.prompts.append(prompt)
        for keyword, reply in self.replies.items():
            if keyword not in prompt:
                continue
            if isinstance(reply, Exception):
                raise reply
            if isinstance(reply, httpx.Response):
                return httpx.Response(
                    reply.status_code, headers=reply.headers, content=reply.content
                )
            if callable(reply):
                return reply(request)
            return httpx.Response(200, json=reply)
        raise httpx.ConnectError("remote API unreachable", request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a synthetic grayscale page with dark text-like strokes."""
    rng = np.random.default_rng(7)
    image = np.full((200, 300), 150, dtype=np.uint8)
    for row in range(30, 170, 20):
        image[row : row + 6, 20:280] = 30
    noise = rng.integers(-40, 40, size=image.shape)
    return np.clip(image.astype(int) + noise, 0, 255).astype(np.uint8)


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    cv2.putText(image, "ID 42", (60, 110), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 0, 0), 2)
    return image


@pytest.fixture
def sample_png(sample_image: np.ndarray) -> bytes:
    return encode(sample_image)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration isolated from the network and the real filesystem."""
    return AppConfig(
        ocr=OCRConfig(download_trained_data=False, default_languages="eng"),
        uploads=UploadConfig(upload_dir=str(tmp_path / "uploads")),
        remote=RemoteConfig(api_url="https://llm.test/"),
        pincode=PincodeConfig(backoff_initial_seconds=0, backoff_max_seconds=0),
    )


@pytest.fixture
def text_api() -> FakeTextApi:
    return FakeTextApi()


@pytest.fixture
def web_pages() -> dict[str, httpx.Response]:
    """URL to response map served to the scraper; unknown URLs 404."""
    return {}


@pytest.fixture
def services(
    app_config: AppConfig,
    text_api: FakeTextApi,
    web_pages: dict[str, httpx.Response],
) -> Iterator[Services]:
    def serve_page(request: httpx.Request) -> httpx.Response:
        return web_pages.get(str(request.url), httpx.Response(404, text="not found"))

    container = build_services(
        app_config,
        remote_transport=text_api.transport,
        web_transport=httpx.MockTransport(serve_page),
    )
    yield container
    container.close()


@pytest.fixture
def client(services: Services) -> TestClient:
    return TestClient(create_app(services=services))
