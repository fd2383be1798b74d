"""Core dispatch and reconciliation layer of the Flux Kontext API.

Architecture Overview
---------------------
1. **Configuration** (config.py): Pydantic Settings, ``FLUXKONTEXT_`` prefix.
2. **Model Registry** (model_registry.py): static Flux model catalog.
3. **Provider** (provider.py): Replicate client seam.
4. **Version Resolver** (version_resolver.py): cached version pinning with a
   static fallback table.
5. **Dispatch Policy** (dispatch.py): edit vs. generate selection and prompt
   validation.
6. **Processors** (processors.py): the edit and generate paths.
7. **Job Store** (job_store.py): transient job records with delayed eviction.
8. **Status Reconciler** (reconciler.py): provider polling and cleanup.
9. **Service** (service.py): owns the per-process state of all of the above.
"""

from fluxkontext.core.config import FluxKontextConfig, config
from fluxkontext.core.service import FluxService

__all__ = [
    "FluxKontextConfig",
    "FluxService",
    "config",
]
