"""Static catalog of the Flux models served through Replicate.

The catalog maps the short logical names used throughout the service to the
upstream ``owner/name`` identifiers Replicate expects.  It is fixed at import
time and never mutated; the listing helpers hand out copies so callers cannot
alter it.

Logical Names
-------------
========  ======================================  ============================
Key       Upstream identifier                     Use
========  ======================================  ============================
kontext   ``black-forest-labs/flux-kontext-pro``  Instruction-based editing
dev       ``black-forest-labs/flux-dev``          Quality text-to-image
schnell   ``black-forest-labs/flux-schnell``      Fast text-to-image
pro       ``black-forest-labs/flux-pro``          General pro model
========  ======================================  ============================
"""

from __future__ import annotations

from types import MappingProxyType

FLUX_MODELS = MappingProxyType(
    {
        "kontext": "black-forest-labs/flux-kontext-pro",
        "dev": "black-forest-labs/flux-dev",
        "schnell": "black-forest-labs/flux-schnell",
        "pro": "black-forest-labs/flux-pro",
    }
)

# Recommended model per use case, exposed by ``GET /api/models``.
RECOMMENDED_MODELS = MappingProxyType(
    {
        "image_editing": "kontext",
        "image_generation": "dev",
        "fast_generation": "schnell",
    }
)


def resolve_logical_name(key: str) -> str:
    """Return the upstream identifier for a logical model name.

    Args:
        key: One of the keys of :data:`FLUX_MODELS`.

    Returns:
        The ``owner/name`` identifier.

    Raises:
        KeyError: If *key* is not in the catalog.
    """
    return FLUX_MODELS[key]


def model_keys() -> list[str]:
    """Logical model names in catalog order."""
    return list(FLUX_MODELS)


def list_models() -> dict[str, str]:
    """Return a copy of the full catalog."""
    return dict(FLUX_MODELS)


def recommended_models() -> dict[str, str]:
    """Return the recommended upstream identifier per use case."""
    return {use: FLUX_MODELS[key] for use, key in RECOMMENDED_MODELS.items()}
