"""Model version resolution with a process-lifetime cache.

Submitting a prediction against a pinned version id saves Replicate from
re-resolving "latest" on every call.  Resolution is an optimisation only, so a
failing metadata lookup never fails the request: the resolver falls back to a
static table of known versions, and finally to the bare model name, leaving
any real error to surface from the submission itself.

Resolution Order
----------------
1. Cached version for the model name (no upstream call).
2. Live lookup of the model's latest version; cached on success.
3. :data:`FALLBACK_VERSIONS` entry for the model name (not cached).
4. The model name unchanged (not cached).

Fallback values are passed to the provider as-is.  Some are bare version ids
and some are qualified ``owner/name:version`` references, since Replicate
accepts both forms depending on the model.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from fluxkontext.core.provider import ProviderBase

logger = logging.getLogger(__name__)

FALLBACK_VERSIONS = MappingProxyType(
    {
        "black-forest-labs/flux-kontext-pro": (
            "0f1178f5a27e9aa2d2d39c8a43c110f7fa7cbf64062ff04a04cd40899e546065"
        ),
        "black-forest-labs/flux-dev": (
            "black-forest-labs/flux-dev:"
            "6ac01f1b64e413e6b65a7ac79c74c22b11aeb6e96067c8b725e1d3fac967a7b7"
        ),
    }
)


class VersionResolver:
    """Resolves upstream model identifiers to concrete version references.

    The cache is unsynchronised.  Concurrent misses for the same model may
    each perform a live lookup; they write the same value, so the race only
    costs a redundant request.

    Args:
        provider: Provider used for live metadata lookups.
        fallback_versions: Static fallback table, keyed by upstream
            identifier.  Defaults to :data:`FALLBACK_VERSIONS`.
    """

    def __init__(
        self,
        provider: ProviderBase,
        fallback_versions: Mapping[str, str] | None = None,
    ) -> None:
        self._provider = provider
        self._fallbacks = FALLBACK_VERSIONS if fallback_versions is None else fallback_versions
        self._cache: dict[str, str] = {}

    @property
    def cached_versions(self) -> Mapping[str, str]:
        """Read-only view of the resolved versions."""
        return MappingProxyType(self._cache)

    async def resolve_version(self, model_name: str) -> str:
        """Return the version reference to submit for *model_name*.

        Args:
            model_name: Upstream ``owner/name`` identifier.

        Returns:
            A cached or freshly resolved version id, a fallback reference, or
            *model_name* itself when nothing better is known.
        """
        cached = self._cache.get(model_name)
        if cached is not None:
            return cached

        try:
            version = await self._provider.latest_version(model_name)
            if not isinstance(version, str) or not version:
                raise ValueError(f"Malformed version for {model_name}: {version!r}")
        except Exception as exc:
            fallback = self._fallbacks.get(model_name, model_name)
            logger.warning(
                "Version lookup for %s failed (%s); using %s", model_name, exc, fallback
            )
            return fallback

        self._cache[model_name] = version
        logger.info("Resolved %s to version %s", model_name, version)
        return version
