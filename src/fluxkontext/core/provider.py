"""Inference provider seam.

The service talks to exactly one external provider, Replicate.  All calls go
through a :class:`ProviderBase` implementation so the dispatch, resolver and
reconciler logic can be exercised against an in-memory provider in tests.

Provider Primitives
-------------------
- **latest_version** - model metadata lookup used by the version resolver.
- **create_prediction** - asynchronous job creation; returns a handle
  immediately (edit path).
- **get_prediction** - status query for a previously created job
  (status reconciler).
- **run** - synchronous run primitive that waits for completion and returns
  the model output (generate path).

See Also
--------
- :mod:`fluxkontext.core.version_resolver`
- :mod:`fluxkontext.core.processors`
- :mod:`fluxkontext.core.reconciler`
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
import replicate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    """Provider-neutral view of a Replicate prediction.

    Attributes:
        id: Provider-assigned prediction identifier.
        status: Provider status string (``starting``, ``processing``,
            ``succeeded``, ``failed``, ``canceled``, ...).
        urls: Handle URLs returned by the provider (``get``, ``cancel``, ...).
        output: Model output; a list of URLs for the Flux models.
        logs: Provider log text, if any.
        error: Provider error message, if any.
    """

    id: str
    status: str | None = None
    urls: dict[str, str] = field(default_factory=dict)
    output: Any = None
    logs: str | None = None
    error: Any = None

    @classmethod
    def from_replicate(cls, prediction: Any) -> Prediction:
        """Build a :class:`Prediction` from a ``replicate`` prediction object."""
        return cls(
            id=prediction.id,
            status=prediction.status,
            urls=dict(prediction.urls or {}),
            output=prediction.output,
            logs=prediction.logs,
            error=prediction.error,
        )


class ProviderBase(ABC):
    """Abstract interface for the inference provider."""

    name: str = "provider"

    @abstractmethod
    async def latest_version(self, model_name: str) -> str:
        """Return the latest version id of *model_name*.

        Raises:
            Exception: Any failure (network, not found, no published version).
        """

    @abstractmethod
    async def create_prediction(self, version: str, input: dict[str, Any]) -> Prediction:
        """Create a prediction without waiting for it to finish."""

    @abstractmethod
    async def get_prediction(self, prediction_id: str) -> Prediction:
        """Fetch the current state of a prediction."""

    @abstractmethod
    async def run(self, model: str, input: dict[str, Any]) -> Any:
        """Run *model* to completion and return its output."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


class ReplicateProvider(ProviderBase):
    """:class:`ProviderBase` backed by the official ``replicate`` client.

    Args:
        api_token: Replicate API token.  When ``None`` the client falls back
            to the ``REPLICATE_API_TOKEN`` environment variable, and calls
            fail upstream if that is unset too.
        transport: HTTP transport for the client's async requests.  The
            provider owns it and closes it in :meth:`aclose`.
    """

    name = "replicate"

    def __init__(
        self,
        api_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._client = replicate.Client(api_token=api_token, transport=self._transport)

    async def latest_version(self, model_name: str) -> str:
        model = await self._client.models.async_get(model_name)
        if model.latest_version is None:
            raise LookupError(f"Model {model_name} has no published version")
        return model.latest_version.id

    async def create_prediction(self, version: str, input: dict[str, Any]) -> Prediction:
        prediction = await self._client.predictions.async_create(version=version, input=input)
        return Prediction.from_replicate(prediction)

    async def get_prediction(self, prediction_id: str) -> Prediction:
        prediction = await self._client.predictions.async_get(prediction_id)
        return Prediction.from_replicate(prediction)

    async def run(self, model: str, input: dict[str, Any]) -> Any:
        # Plain URLs rather than FileOutput objects; the caller downloads them.
        return await self._client.async_run(model, input=input, use_file_output=False)

    async def aclose(self) -> None:
        await self._transport.aclose()
