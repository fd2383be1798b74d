"""Shared pytest fixtures for Flux Kontext API tests."""

from __future__ import annotations

import dataclasses
import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from fluxkontext.api.main import create_app
from fluxkontext.core.artifacts import ArtifactStore
from fluxkontext.core.config import FluxKontextConfig
from fluxkontext.core.provider import Prediction, ProviderBase
from fluxkontext.core.service import FluxService

ARTIFACT_BYTES = b"RIFF\x00\x00\x00\x00WEBPVP8 fake-image-data"


class FakeProvider(ProviderBase):
    """In-memory provider that records every call.

    Attributes:
        versions: Model name -> latest version id.  Missing names make
            :meth:`latest_version` fail like a 404.
        predictions: Prediction id -> current :class:`Prediction`.
        initial_status: Status given to newly created predictions.
        run_output: Output returned by :meth:`run`.
        fail_create / fail_get / fail_run: Exceptions to raise instead of
            answering.
        calls: ``(method, *args)`` tuples in call order.
    """

    name = "replicate"

    def __init__(self) -> None:
        self.versions: dict[str, Any] = {}
        self.predictions: dict[str, Prediction] = {}
        self.initial_status = "processing"
        self.run_output: Any = ["https://replicate.delivery/xezq/output.webp"]
        self.fail_create: Exception | None = None
        self.fail_get: Exception | None = None
        self.fail_run: Exception | None = None
        self.calls: list[tuple] = []

    def calls_to(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    async def latest_version(self, model_name: str) -> str:
        self.calls.append(("latest_version", model_name))
        if model_name not in self.versions:
            raise LookupError(f"Model not found: {model_name}")
        version = self.versions[model_name]
        if isinstance(version, Exception):
            raise version
        return version

    async def create_prediction(self, version: str, input: dict[str, Any]) -> Prediction:
        self.calls.append(("create_prediction", version, input))
        if self.fail_create is not None:
            raise self.fail_create
        prediction_id = f"pred{len(self.predictions) + 1:04d}"
        prediction = Prediction(
            id=prediction_id,
            status=self.initial_status,
            urls={
                "get": f"https://api.replicate.com/v1/predictions/{prediction_id}",
                "cancel": f"https://api.replicate.com/v1/predictions/{prediction_id}/cancel",
            },
        )
        self.predictions[prediction_id] = prediction
        return prediction

    async def get_prediction(self, prediction_id: str) -> Prediction:
        self.calls.append(("get_prediction", prediction_id))
        if self.fail_get is not None:
            raise self.fail_get
        return self.predictions[prediction_id]

    async def run(self, model: str, input: dict[str, Any]) -> Any:
        self.calls.append(("run", model, input))
        if self.fail_run is not None:
            raise self.fail_run
        return self.run_output

    async def aclose(self) -> None:
        self.calls.append(("aclose",))

    def advance(self, prediction_id: str, status: str, output: Any = None, error: Any = None) -> None:
        """Move a prediction to a new provider-side state."""
        self.predictions[prediction_id] = dataclasses.replace(
            self.predictions[prediction_id],
            status=status,
            output=output,
            error=error,
            logs=f"status={status}",
        )


def _artifact_handler(request: httpx.Request) -> httpx.Response:
    if "missing" in request.url.path:
        return httpx.Response(404)
    return httpx.Response(200, content=ARTIFACT_BYTES, headers={"Content-Type": "image/webp"})


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
def test_config(temp_dir: Path, monkeypatch) -> FluxKontextConfig:
    """Create a test configuration with a temporary uploads directory.

    Unprefixed deployment variables are cleared so a developer's shell
    cannot leak into the tests.
    """
    for name in ("REPLICATE_API_TOKEN", "BASE_URL", "PORT"):
        monkeypatch.delenv(name, raising=False)

    return FluxKontextConfig(
        _env_file=None,
        uploads_dir=str(temp_dir / "uploads"),
        base_url="http://localhost:3000",
        replicate_api_token="r8_test_token",
        job_ttl_seconds=60.0,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def artifact_bytes() -> bytes:
    """Body served for every downloaded provider output."""
    return ARTIFACT_BYTES


@pytest.fixture
def artifact_store(test_config: FluxKontextConfig) -> ArtifactStore:
    """ArtifactStore whose downloads are served by an in-memory transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(_artifact_handler))
    return ArtifactStore(test_config, http_client=client)


@pytest.fixture
def service(
    test_config: FluxKontextConfig,
    fake_provider: FakeProvider,
    artifact_store: ArtifactStore,
) -> FluxService:
    return FluxService(test_config, fake_provider, artifact_store)


@pytest.fixture
def test_client(
    test_config: FluxKontextConfig,
    fake_provider: FakeProvider,
    artifact_store: ArtifactStore,
) -> Generator[TestClient, None, None]:
    """TestClient with the application lifespan running."""
    app = create_app(test_config, provider=fake_provider, artifacts=artifact_store)
    with TestClient(app) as client:
        yield client
