"""Dispatch policy: choose the processing path for an incoming request.

A request that carries a source image is an *edit*, handled asynchronously by
Flux Kontext, unless the caller explicitly asks for ``generation`` mode.
Everything else is a *generate*, handled synchronously by Flux Dev.  The rule
is asymmetric on purpose: an image can be ignored by forcing generation, but
the generate path never picks up an image on its own.
"""

from __future__ import annotations

from enum import Enum

from fluxkontext.core.errors import ValidationError

#: ``model_type`` value that forces the generate path.
GENERATION_MODE = "generation"

MISSING_PROMPT_MESSAGE = "Missing required parameter: prompt"


class ProcessingPath(str, Enum):
    """Processing path selected for a request."""

    EDIT = "edit"
    GENERATE = "generate"


def select_path(image_url: str | None, model_type: str | None = None) -> ProcessingPath:
    """Select the processing path for a request.

    Args:
        image_url: Source image reference, if any.
        model_type: Optional override; ``"generation"`` forces the generate
            path even when an image is present.

    Returns:
        :attr:`ProcessingPath.EDIT` when an image is present and generation
        was not requested, :attr:`ProcessingPath.GENERATE` otherwise.
    """
    if image_url and model_type != GENERATION_MODE:
        return ProcessingPath.EDIT
    return ProcessingPath.GENERATE


def require_prompt(prompt: str | None) -> str:
    """Validate that a prompt is present and non-blank.

    Raises:
        ValidationError: If *prompt* is missing, empty, or whitespace only.
    """
    if prompt is None or not prompt.strip():
        raise ValidationError(MISSING_PROMPT_MESSAGE)
    return prompt


def model_type_for(path: ProcessingPath) -> str:
    """Logical model name recorded for jobs created through *path*."""
    return "kontext" if path is ProcessingPath.EDIT else "dev"
