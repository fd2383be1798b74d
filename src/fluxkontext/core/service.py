"""Service context owning all per-process state.

:class:`FluxService` ties the core components together and is the only object
route handlers talk to.  It owns the job store and the version cache, so each
instance is fully independent: the application builds one at startup, and
tests can build as many as they need.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fluxkontext.core.artifacts import ArtifactStore
from fluxkontext.core.config import FluxKontextConfig
from fluxkontext.core.dispatch import ProcessingPath, model_type_for, require_prompt, select_path
from fluxkontext.core.job_store import JobRecord, JobStore
from fluxkontext.core.model_registry import model_keys
from fluxkontext.core.processors import FluxProcessor, GenerationOptions
from fluxkontext.core.provider import ProviderBase
from fluxkontext.core.reconciler import StatusReconciler
from fluxkontext.core.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FluxService:
    """Dispatches requests and reconciles job state for one process.

    Args:
        config: Application configuration.
        provider: Inference provider.
        artifacts: File store; built from *config* when omitted.
    """

    def __init__(
        self,
        config: FluxKontextConfig,
        provider: ProviderBase,
        artifacts: ArtifactStore | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.artifacts = artifacts or ArtifactStore(config)
        self.jobs = JobStore()
        self.resolver = VersionResolver(provider)
        self.processor = FluxProcessor(config, provider, self.resolver, self.artifacts)
        self.reconciler = StatusReconciler(self.jobs, provider, config.job_ttl_seconds)

    async def process(
        self,
        prompt: str | None,
        image_url: str | None = None,
        options: GenerationOptions | None = None,
        model_type: str | None = None,
    ) -> dict:
        """Validate a request and run it along the selected path.

        Edit submissions are recorded in the job store; generate results are
        returned directly.

        Returns:
            ``{jobId, status, urls}`` for edits, ``{outputUrl, status}`` for
            generations.

        Raises:
            ValidationError: If the prompt is missing.
            UpstreamSubmissionError: If the provider call fails.
            ArtifactPersistError: If a generated image cannot be stored.
        """
        prompt = require_prompt(prompt)
        path = select_path(image_url, model_type)

        if path is ProcessingPath.GENERATE:
            result = await self.processor.submit_generate(prompt, options)
            return result.to_api()

        submission = await self.processor.submit_edit(image_url, prompt, options)
        self.jobs.put(
            submission.job_id,
            JobRecord(
                job_id=submission.job_id,
                status=submission.status,
                prompt=prompt,
                source_image_url=image_url,
                model_type=model_type_for(path),
                provider=self.provider.name,
            ),
        )
        logger.info("Tracking job %s (%s)", submission.job_id, submission.status)
        return submission.to_api()

    async def generate(self, prompt: str | None, options: GenerationOptions | None = None) -> dict:
        """Run the generate path regardless of request shape."""
        prompt = require_prompt(prompt)
        result = await self.processor.submit_generate(prompt, options)
        return result.to_api()

    async def poll(self, job_id: str) -> dict:
        """Reconcile and report the status of an edit job."""
        return await self.reconciler.poll(job_id)

    def health(self) -> dict:
        return {
            "status": "healthy",
            "timestamp": _utc_timestamp(),
            "activeJobs": len(self.jobs),
            "models": model_keys(),
            "replicateConnected": self.config.replicate_connected,
        }

    async def aclose(self) -> None:
        """Cancel pending evictions and release network clients."""
        self.jobs.close()
        await self.artifacts.aclose()
        await self.provider.aclose()
