"""Pydantic request models for the Flux Kontext API.

These models define the JSON schema for the POST endpoints.  FastAPI uses them
for request validation, serialisation, and OpenAPI documentation generation.

``prompt`` is optional at the schema level on purpose: a missing prompt is
reported by the dispatch layer with its own 400 message instead of a generic
schema error.

Models
------
FluxKontextRequest
    Payload for ``POST /api/flux-kontext`` - edit or generate, depending on
    whether an image is supplied.
GenerateImageRequest
    Payload for ``POST /api/generate-image`` - always generates.
SmokeTestRequest
    Payload for ``POST /api/test-generation``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from fluxkontext.core.processors import GenerationOptions


class FluxKontextRequest(BaseModel):
    """Request body for the ``POST /api/flux-kontext`` endpoint.

    Attributes:
        image_url: Source image to edit.  When present (and ``model_type`` is
            not ``"generation"``) the request runs on Flux Kontext.
        prompt: Edit instruction or generation prompt.
        guidance_scale: Guidance scale.  Defaults to 3.5.
        aspect_ratio: Output aspect ratio.  Defaults to ``"1:1"``.
        seed: Random seed.  The edit path picks a random seed when omitted.
        model_type: ``"generation"`` forces text-to-image generation even
            when ``image_url`` is set.
    """

    image_url: str | None = Field(
        default=None,
        description="Source image URL (selects the edit path).",
    )
    prompt: str | None = Field(
        default=None,
        description="Edit instruction or generation prompt.",
    )
    guidance_scale: float | None = Field(
        default=None,
        description="Guidance scale.  None = 3.5.",
    )
    aspect_ratio: str | None = Field(
        default=None,
        description="Aspect ratio such as '1:1' or '16:9'.  None = '1:1'.",
    )
    seed: int | None = Field(
        default=None,
        description="Random seed.",
    )
    model_type: str | None = Field(
        default=None,
        description="Set to 'generation' to ignore image_url and generate.",
    )

    def options(self) -> GenerationOptions:
        return GenerationOptions(
            guidance=self.guidance_scale,
            aspect_ratio=self.aspect_ratio,
            seed=self.seed,
        )


class GenerateImageRequest(BaseModel):
    """Request body for the ``POST /api/generate-image`` endpoint."""

    prompt: str | None = Field(default=None, description="Generation prompt.")
    guidance: float | None = Field(default=None, description="Guidance.  None = 3.5.")
    aspect_ratio: str | None = Field(default=None, description="Aspect ratio.  None = '1:1'.")
    seed: int | None = Field(default=None, description="Random seed, passed through.")

    def options(self) -> GenerationOptions:
        return GenerationOptions(
            guidance=self.guidance,
            aspect_ratio=self.aspect_ratio,
            seed=self.seed,
        )


class SmokeTestRequest(BaseModel):
    """Request body for the ``POST /api/test-generation`` endpoint."""

    prompt: str | None = Field(default=None, description="Optional smoke-test prompt.")
