"""Shared pytest fixtures for Veoworks tests."""

from __future__ import annotations

import io
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from veoworks.api.main import create_app
from veoworks.core.config import VeoworksConfig

VIDEO_URI = "https://generativelanguage.example.com/v1beta/files/abc:download?alt=media"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video-content"


def png_bytes(size: tuple[int, int] = (2, 2)) -> bytes:
    """Return a small PNG image encoded with Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fake remote service.
# ---------------------------------------------------------------------------


def make_operation(done: bool = False, uri: str | None = None, name: str = "operations/test"):
    """Build an object shaped like a ``GenerateVideosOperation``.

    Args:
        done: Completion flag.
        uri: Video URI for a completed operation.  ``None`` gives an empty
            ``generated_videos`` list.
        name: Operation name.
    """
    response = None
    if done:
        videos = [SimpleNamespace(video=SimpleNamespace(uri=uri))] if uri else []
        response = SimpleNamespace(generated_videos=videos)
    return SimpleNamespace(name=name, done=done, response=response)


class FakeVideoService:
    """In-memory stand-in for :class:`~veoworks.core.client.VideoServiceClient`.

    ``submit`` returns *initial*.  Each ``get_operation`` call returns (or
    raises) the next item of *updates*.
    """

    def __init__(
        self,
        initial: Any,
        updates: list[Any] | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        submit_error: Exception | None = None,
        api_key: str = "test-key",
    ) -> None:
        self.initial = initial
        self.updates = list(updates or [])
        self.http = http if http is not None else httpx.AsyncClient(transport=video_transport())
        self.submit_error = submit_error
        self.api_key = api_key
        self.submitted: list = []
        self.status_calls: list = []
        self.closed = False

    async def submit(self, request):
        self.submitted.append(request)
        if self.submit_error is not None:
            raise self.submit_error
        return self.initial

    async def get_operation(self, operation):
        self.status_calls.append(operation)
        item = self.updates.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True
        await self.http.aclose()


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def video_transport(
    status_code: int = 200,
    content: bytes = VIDEO_BYTES,
    content_type: str = "video/mp4",
    requests: list | None = None,
) -> httpx.MockTransport:
    """Return an ``httpx.MockTransport`` serving a fixed download response.

    Args:
        status_code: Status of every response.
        content: Body of every response.
        content_type: ``content-type`` header value.
        requests: Optional list that receives each ``httpx.Request``.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, content=content, headers={"content-type": content_type})

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Fixtures.
# ---------------------------------------------------------------------------


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove credential and VEOWORKS_* variables from the environment."""
    for name in ("VEOWORKS_API_KEY", "GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(name, raising=False)
    for name in (
        "VEOWORKS_POLL_INTERVAL",
        "VEOWORKS_POLL_TIMEOUT",
        "VEOWORKS_SERVER_PORT",
        "VEOWORKS_JOB_RETENTION",
        "VEOWORKS_UPLOAD_RETENTION",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config(temp_dir: Path, clean_env) -> VeoworksConfig:
    """Create a test configuration with a minimal template and static directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        VeoworksConfig instance with fast polling
    """
    templates_dir = temp_dir / "templates"
    static_dir = temp_dir / "static"
    templates_dir.mkdir()
    static_dir.mkdir()
    (templates_dir / "index.html").write_text(
        "<html><head><title>Veoworks Video Generator</title></head><body></body></html>",
        encoding="utf-8",
    )

    return VeoworksConfig(
        _env_file=None,
        api_key="test-key",
        poll_interval=0.01,
        poll_timeout=5.0,
        max_upload_bytes=1024 * 1024,
        templates_dir=templates_dir,
        static_dir=static_dir,
    )


@pytest.fixture
def download_requests() -> list:
    """Collects requests sent to the fake download endpoint."""
    return []


@pytest.fixture
def make_service(download_requests: list) -> Callable[..., FakeVideoService]:
    """Factory for :class:`FakeVideoService` instances.

    By default the job completes after one status check and the download
    succeeds.
    """

    def factory(
        initial: Any = None,
        updates: list[Any] | None = None,
        *,
        download_status: int = 200,
        submit_error: Exception | None = None,
    ) -> FakeVideoService:
        if initial is None:
            initial = make_operation(done=False)
        if updates is None:
            updates = [make_operation(done=True, uri=VIDEO_URI)]
        http = httpx.AsyncClient(
            transport=video_transport(status_code=download_status, requests=download_requests)
        )
        return FakeVideoService(initial, updates, http=http, submit_error=submit_error)

    return factory


@pytest.fixture
def fake_service(make_service) -> FakeVideoService:
    """A service whose job finishes after one status check."""
    return make_service()


@pytest.fixture
def operation_factory() -> Callable[..., Any]:
    """The :func:`make_operation` builder."""
    return make_operation


@pytest.fixture
def video_uri() -> str:
    return VIDEO_URI


@pytest.fixture
def video_bytes() -> bytes:
    return VIDEO_BYTES


@pytest.fixture
def png_data() -> bytes:
    """Bytes of a small valid PNG image."""
    return png_bytes()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def test_client(test_config: VeoworksConfig, fake_service: FakeVideoService):
    """FastAPI TestClient wired to the fake service.

    The client is used as a context manager so the lifespan handler runs and
    background jobs keep their event loop between requests.
    """
    app = create_app(test_config, client=fake_service)
    with TestClient(app) as client:
        yield client
