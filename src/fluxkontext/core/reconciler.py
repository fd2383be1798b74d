"""Status reconciliation between the job store and the provider.

Each poll asks the provider for the current state of a job, copies the status
into the local record, extracts the output URL once the job has succeeded,
and arms the record's eviction when the job reached a terminal status.

State machine per job::

    queued / processing / starting  --->  succeeded | failed   (absorbing)

A failed provider query leaves the local record exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fluxkontext.core.errors import NotFoundError, UpstreamStatusError
from fluxkontext.core.job_store import JobStore, is_terminal
from fluxkontext.core.provider import ProviderBase

logger = logging.getLogger(__name__)


def extract_output_url(status: str | None, output: Any) -> str | None:
    """Return the single output URL of a succeeded prediction.

    Args:
        status: Provider status.
        output: Provider output; a sequence of URLs or a single URL.

    Returns:
        The first element of a sequence output, the scalar output itself, or
        ``None`` when the job has not succeeded or produced nothing.
    """
    if status != "succeeded" or not output:
        return None
    if isinstance(output, Sequence) and not isinstance(output, (str, bytes)):
        return output[0]
    return output


class StatusReconciler:
    """Refreshes job records from the provider on demand.

    Args:
        store: Job store holding the records.
        provider: Provider to query.
        eviction_delay: Seconds between the first terminal observation and
            removal of the record.
    """

    def __init__(self, store: JobStore, provider: ProviderBase, eviction_delay: float = 60.0) -> None:
        self._store = store
        self._provider = provider
        self._eviction_delay = eviction_delay

    async def poll(self, job_id: str) -> dict:
        """Return the current status of *job_id*.

        Returns:
            Dictionary with ``status``, ``outputUrl``, ``jobId``, ``logs`` and
            ``error``.

        Raises:
            NotFoundError: If the job is unknown locally.
            UpstreamStatusError: If the provider query fails.
        """
        if self._store.get(job_id) is None:
            raise NotFoundError("Job not found")

        try:
            prediction = await self._provider.get_prediction(job_id)
        except Exception as exc:
            logger.exception("Error checking prediction status for job %s", job_id)
            raise UpstreamStatusError("Failed to check job status") from exc

        record = self._store.update(job_id, prediction.status)
        # The first terminal status observed is the one reported from then on.
        status = record.status if record is not None else prediction.status
        output_url = extract_output_url(status, prediction.output)

        if is_terminal(status):
            self._store.schedule_eviction(job_id, self._eviction_delay)

        return {
            "status": status,
            "outputUrl": output_url,
            "jobId": job_id,
            "logs": prediction.logs,
            "error": prediction.error,
        }
