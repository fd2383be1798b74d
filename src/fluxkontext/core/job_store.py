"""Transient in-memory store of submitted edit jobs.

Records live only in the memory of the running process.  A record is created
when the provider acknowledges an edit submission, has its status refreshed
by the status reconciler on every poll, and is removed once, a fixed delay
after the first terminal status was observed.

Eviction
--------
Removal is a one-shot ``loop.call_later`` timer owned by the store.  Arming
the timer is idempotent per job id, so two polls that both observe a terminal
status produce a single removal.  Pending timers are cancelled by
:meth:`JobStore.close`; nothing is persisted across restarts.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"succeeded", "failed"})


def is_terminal(status: str | None) -> bool:
    """Return ``True`` for statuses after which a job never changes."""
    return status in TERMINAL_STATUSES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobRecord:
    """One submitted edit job.

    Only ``status`` ever changes, and only through :meth:`JobStore.update`.

    Attributes:
        job_id: Provider-assigned identifier.
        status: Last status reported by the provider.
        prompt: Prompt the job was submitted with.
        source_image_url: Input image reference.
        model_type: Logical model name (``kontext`` or ``dev``).
        provider: Name of the provider that owns the job.
        created_at: Insertion time (UTC).
    """

    job_id: str
    status: str
    prompt: str
    source_image_url: str | None = None
    model_type: str = "kontext"
    provider: str = "replicate"
    created_at: datetime = field(default_factory=_utcnow)


class JobStore:
    """Mapping of job id to :class:`JobRecord` with delayed eviction.

    Operations on different ids never interact.  Operations on the same id are
    not serialised: the last :meth:`update` wins, except that a terminal
    status is never replaced by a non-terminal one.
    """

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._records

    def put(self, job_id: str, record: JobRecord) -> None:
        self._records[job_id] = record

    def get(self, job_id: str) -> JobRecord | None:
        return self._records.get(job_id)

    def update(self, job_id: str, status: str) -> JobRecord | None:
        """Replace the status of an existing record.

        Args:
            job_id: Identifier of the record to update.
            status: New provider status.

        Returns:
            The stored record after the update, or ``None`` if *job_id* is
            unknown (already evicted records are never recreated).  A record
            that already holds a terminal status is returned unchanged.
        """
        record = self._records.get(job_id)
        if record is None:
            return None
        if is_terminal(record.status):
            return record
        updated = dataclasses.replace(record, status=status)
        self._records[job_id] = updated
        return updated

    def is_eviction_scheduled(self, job_id: str) -> bool:
        return job_id in self._evictions

    def schedule_eviction(self, job_id: str, delay: float) -> bool:
        """Arm a one-shot removal of *job_id* after *delay* seconds.

        Must be called from a running event loop.

        Returns:
            ``True`` if a timer was armed, ``False`` if one was already
            pending for this id or the id is unknown.
        """
        if job_id in self._evictions or job_id not in self._records:
            return False
        loop = asyncio.get_running_loop()
        self._evictions[job_id] = loop.call_later(delay, self._evict, job_id)
        logger.debug("Scheduled eviction of job %s in %.1fs", job_id, delay)
        return True

    def _evict(self, job_id: str) -> None:
        self._evictions.pop(job_id, None)
        if self._records.pop(job_id, None) is not None:
            logger.debug("Evicted job %s", job_id)

    def close(self) -> None:
        """Cancel all pending eviction timers."""
        for handle in self._evictions.values():
            handle.cancel()
        self._evictions.clear()
