"""Edit and generate processing paths.

Edit (Flux Kontext)
    Source image + instruction.  Resolves the pinned model version and
    creates an asynchronous prediction; the caller receives a job handle and
    polls for the result.

Generate (Flux Dev)
    Prompt only.  Runs the model to completion, downloads the first output and
    returns a locally served URL.  There is no job handle and nothing is
    recorded in the job store.

Defaults differ between the paths: the edit path draws a random seed when
none is supplied, the generate path leaves seeding to the provider.

Both paths wrap any failure with a message naming the path and re-raise it;
nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from random import randrange
from typing import Any

from fluxkontext.core.artifacts import ArtifactStore
from fluxkontext.core.config import FluxKontextConfig
from fluxkontext.core.errors import ArtifactPersistError, UpstreamSubmissionError
from fluxkontext.core.model_registry import resolve_logical_name
from fluxkontext.core.provider import ProviderBase
from fluxkontext.core.version_resolver import VersionResolver

logger = logging.getLogger(__name__)

#: Status reported for an edit job when the provider returned none.
DEFAULT_JOB_STATUS = "processing"
#: Status reported by the generate path, which only returns finished results.
COMPLETED_STATUS = "completed"


@dataclass(frozen=True)
class GenerationOptions:
    """Optional tuning parameters shared by both paths.

    ``None`` means "not supplied by the caller"; each path applies its own
    defaults.
    """

    guidance: float | None = None
    aspect_ratio: str | None = None
    seed: int | None = None


@dataclass(frozen=True)
class EditSubmission:
    """Handle for an accepted edit job."""

    job_id: str
    status: str
    urls: dict[str, str]

    def to_api(self) -> dict:
        return {"jobId": self.job_id, "status": self.status, "urls": self.urls}


@dataclass(frozen=True)
class GenerationResult:
    """A finished generation, stored locally."""

    output_url: str
    status: str = COMPLETED_STATUS

    def to_api(self) -> dict:
        return {"outputUrl": self.output_url, "status": self.status}


def _first_output(output: Any) -> str:
    if isinstance(output, (list, tuple)):
        if not output:
            raise ValueError("Provider returned no output")
        return str(output[0])
    if not output:
        raise ValueError("Provider returned no output")
    return str(output)


class FluxProcessor:
    """Submits work to the provider along the edit and generate paths.

    Args:
        config: Application configuration (defaults, seed range).
        provider: Inference provider.
        resolver: Version resolver used by the edit path.
        artifacts: Store that persists generated images.
    """

    def __init__(
        self,
        config: FluxKontextConfig,
        provider: ProviderBase,
        resolver: VersionResolver,
        artifacts: ArtifactStore,
    ) -> None:
        self._config = config
        self._provider = provider
        self._resolver = resolver
        self._artifacts = artifacts

    def build_edit_input(self, image_url: str, prompt: str, options: GenerationOptions) -> dict:
        """Build the Flux Kontext input payload."""
        return {
            "image_url": image_url,
            "prompt": prompt,
            "guidance_scale": (
                options.guidance if options.guidance is not None else self._config.default_guidance
            ),
            "num_images": 1,
            "output_format": "jpeg",
            "aspect_ratio": options.aspect_ratio or self._config.default_aspect_ratio,
            "seed": (
                options.seed if options.seed is not None else randrange(self._config.max_random_seed)
            ),
        }

    def build_generate_input(self, prompt: str, options: GenerationOptions) -> dict:
        """Build the Flux Dev input payload.

        ``seed`` is only included when the caller supplied one.
        """
        payload = {
            "prompt": prompt,
            "guidance": (
                options.guidance if options.guidance is not None else self._config.default_guidance
            ),
            "num_outputs": 1,
            "aspect_ratio": options.aspect_ratio or self._config.default_aspect_ratio,
            "output_format": "webp",
            "output_quality": 90,
        }
        if options.seed is not None:
            payload["seed"] = options.seed
        return payload

    async def submit_edit(
        self,
        image_url: str,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> EditSubmission:
        """Create an asynchronous Flux Kontext prediction.

        Returns:
            The provider job id, its initial status and handle URLs.

        Raises:
            UpstreamSubmissionError: If version resolution or submission fails.
        """
        options = options or GenerationOptions()
        payload = self.build_edit_input(image_url, prompt, options)
        logger.info("Processing with Flux Kontext: image_url=%s prompt=%r", image_url, prompt)

        try:
            version = await self._resolver.resolve_version(resolve_logical_name("kontext"))
            prediction = await self._provider.create_prediction(version, payload)
        except Exception as exc:
            logger.exception("Flux Kontext processing error")
            raise UpstreamSubmissionError(f"Flux Kontext processing failed: {exc}") from exc

        return EditSubmission(
            job_id=prediction.id,
            status=prediction.status or DEFAULT_JOB_STATUS,
            urls=prediction.urls,
        )

    async def submit_generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Run Flux Dev to completion and store the first output locally.

        Raises:
            UpstreamSubmissionError: If the provider run fails.
            ArtifactPersistError: If the output cannot be downloaded or written.
        """
        options = options or GenerationOptions()
        payload = self.build_generate_input(prompt, options)
        logger.info("Processing with Flux Dev: prompt=%r", prompt)

        try:
            output = await self._provider.run(resolve_logical_name("dev"), payload)
            output_url = _first_output(output)
        except Exception as exc:
            logger.exception("Flux Dev processing error")
            raise UpstreamSubmissionError(f"Flux Dev processing failed: {exc}") from exc

        try:
            filename = await self._artifacts.persist_from_url(output_url)
        except Exception as exc:
            logger.exception("Failed to store Flux Dev output %s", output_url)
            raise ArtifactPersistError(f"Flux Dev processing failed: {exc}") from exc

        return GenerationResult(output_url=self._artifacts.public_url(filename))
