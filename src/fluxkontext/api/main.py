"""Flux Kontext API — FastAPI Application.

This module is the single entry point for the web application.  It defines
the :func:`create_app` factory, the module-level ``app`` instance, all REST
API routes, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Per-process state** (job store, version cache) is owned by a
  :class:`~fluxkontext.core.service.FluxService` built in the application
  lifespan and stored on ``app.state``.  Handlers reach it through the
  :func:`get_service` dependency.
- **Image editing** creates an asynchronous Replicate prediction on Flux
  Kontext; callers poll ``/api/job-status/{job_id}`` for the result.
- **Image generation** runs Flux Dev synchronously and answers with a link to
  a locally stored copy of the output.
- **Uploads and generated images** are written to ``config.uploads_dir`` and
  served by FastAPI's ``StaticFiles`` at ``/uploads``.
- **Errors** raised by the core carry their HTTP status and are rendered as
  ``{"error": ...}`` JSON by the exception handlers registered here.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/upload-image``         Store an uploaded source image
GET       ``/uploads/{file}``           Serve uploaded/generated files
POST      ``/api/flux-kontext``         Edit (image given) or generate
POST      ``/api/generate-image``       Generate from a prompt
GET       ``/api/job-status/{job_id}``  Poll an edit job
GET       ``/api/models``               Model catalog and recommendations
GET       ``/health``                   Liveness and job count
POST      ``/api/test-generation``      Smoke-test the generate path
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    fluxkontext

Direct invocation::

    python -m fluxkontext.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from fluxkontext import __version__
from fluxkontext.api.models import FluxKontextRequest, GenerateImageRequest, SmokeTestRequest
from fluxkontext.core.artifacts import ArtifactStore
from fluxkontext.core.config import FluxKontextConfig, config
from fluxkontext.core.errors import FluxKontextError, ValidationError
from fluxkontext.core.model_registry import list_models, model_keys, recommended_models
from fluxkontext.core.processors import GenerationOptions
from fluxkontext.core.provider import ProviderBase, ReplicateProvider
from fluxkontext.core.service import FluxService

logger = logging.getLogger(__name__)

DEFAULT_TEST_PROMPT = "a beautiful sunset over mountains, photorealistic"

AVAILABLE_ENDPOINTS = [
    "POST /api/upload-image",
    "GET /uploads/:file",
    "POST /api/flux-kontext",
    "POST /api/generate-image",
    "GET /api/job-status/:jobId",
    "GET /api/models",
    "GET /health",
    "POST /api/test-generation",
]

router = APIRouter()


def get_service(request: Request) -> FluxService:
    """Return the :class:`FluxService` owned by the running application."""
    return request.app.state.service


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


async def _flux_error_handler(request: Request, exc: FluxKontextError) -> JSONResponse:
    """Render core errors as ``{"error": message}`` with their status code."""
    if exc.status_code >= 500:
        logger.error("%s at path=%s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.warning("%s at path=%s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render schema violations (bad JSON, wrong field types) as 400."""
    logger.warning("ValidationError path=%s errors=%s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "details": jsonable_encoder(exc.errors())},
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """List the available endpoints for unmatched routes.

    A known path requested with an unsupported method counts as unmatched.
    """
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"error": "Endpoint not found", "available_endpoints": AVAILABLE_ENDPOINTS},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail) if exc.detail else "HTTP error"},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error at path=%s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.post("/api/upload-image")
async def upload_image(
    request: Request,
    image: UploadFile | None = File(default=None),
    service: FluxService = Depends(get_service),
) -> dict:
    """Store an uploaded source image and return its local URL.

    The URL is built from the scheme and host the client used, so it can be
    passed straight back as ``image_url`` to ``/api/flux-kontext``.

    Returns:
        Dictionary with ``success``, ``imageUrl``, ``filename``,
        ``originalName``, and ``size``.

    Raises:
        ValidationError: 400 if no file was sent.
        UploadRejectedError: 400 for a disallowed type or an oversized file.
    """
    if image is None:
        raise ValidationError("No image file provided")

    stored = await service.artifacts.save_upload(image)
    return {
        "success": True,
        "imageUrl": f"{request.base_url}uploads/{stored.filename}",
        "filename": stored.filename,
        "originalName": stored.original_name,
        "size": stored.size,
    }


@router.post("/api/flux-kontext")
async def flux_kontext(
    req: FluxKontextRequest,
    service: FluxService = Depends(get_service),
) -> dict:
    """Edit an image with Flux Kontext, or generate one with Flux Dev.

    A request with ``image_url`` creates an asynchronous edit job and returns
    ``{jobId, status, urls}``; poll ``/api/job-status/{jobId}`` for the
    result.  A request without an image, or with ``model_type`` set to
    ``"generation"``, blocks until Flux Dev finishes and returns
    ``{outputUrl, status}``.

    Raises:
        ValidationError: 400 if ``prompt`` is missing.
        UpstreamSubmissionError: 500 if the provider call fails.
        ArtifactPersistError: 500 if the generated image cannot be stored.
    """
    return await service.process(
        req.prompt,
        image_url=req.image_url,
        options=req.options(),
        model_type=req.model_type,
    )


@router.post("/api/generate-image")
async def generate_image(
    req: GenerateImageRequest,
    service: FluxService = Depends(get_service),
) -> dict:
    """Generate an image from a prompt with Flux Dev.

    Returns:
        Dictionary with ``outputUrl`` (a locally served copy of the result)
        and ``status``.
    """
    return await service.generate(req.prompt, req.options())


@router.get("/api/job-status/{job_id}")
async def job_status(job_id: str, service: FluxService = Depends(get_service)) -> dict:
    """Refresh an edit job from the provider and report its status.

    Returns:
        Dictionary with ``status``, ``outputUrl``, ``jobId``, ``logs``, and
        ``error``.

    Raises:
        NotFoundError: 404 if the job is unknown or was already evicted.
        UpstreamStatusError: 500 if the provider cannot be queried.
    """
    return await service.poll(job_id)


@router.get("/api/models")
async def get_models() -> dict:
    """Return the model catalog and the recommended model per use case."""
    return {
        "available_models": list_models(),
        "recommended": recommended_models(),
    }


@router.get("/health")
async def health(service: FluxService = Depends(get_service)) -> dict:
    return service.health()


@router.post("/api/test-generation")
async def test_generation(
    req: SmokeTestRequest | None = None,
    service: FluxService = Depends(get_service),
):
    """Run a quick generation to verify provider connectivity.

    Failures are reported in the body (``success: false``) with status 500
    instead of going through the generic error handlers.
    """
    prompt = (req.prompt if req else None) or DEFAULT_TEST_PROMPT
    logger.info("Running test generation with prompt: %r", prompt)

    try:
        result = await service.generate(
            prompt,
            GenerationOptions(guidance=3.5, aspect_ratio="1:1"),
        )
    except FluxKontextError as exc:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": exc.message, "message": "Test generation failed"},
        )

    return {
        "success": True,
        "message": "Test generation completed successfully",
        "result": result,
    }


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    app_config: FluxKontextConfig | None = None,
    provider: ProviderBase | None = None,
    artifacts: ArtifactStore | None = None,
) -> FastAPI:
    """Build a FastAPI application with its own service state.

    Args:
        app_config: Configuration to use.  Defaults to the global
            :data:`~fluxkontext.core.config.config`.
        provider: Inference provider.  Defaults to a
            :class:`~fluxkontext.core.provider.ReplicateProvider` using the
            configured token.
        artifacts: File store.  Built from the configuration when omitted.

    Returns:
        The configured application.  The :class:`FluxService` is created when
        the lifespan starts and closed when it ends.
    """
    cfg = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        app.state.service = FluxService(
            cfg,
            provider or ReplicateProvider(cfg.replicate_api_token),
            artifacts,
        )
        logger.info("FluxService initialised (uploads in %s).", cfg.uploads_dir)

        yield

        # --- Shutdown ------------------------------------------------------
        await app.state.service.aclose()
        logger.info("FluxService closed; pending job evictions cancelled.")

    app = FastAPI(
        title="Flux Kontext API",
        description="Image editing and generation with Flux models on Replicate.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FluxKontextError, _flux_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.include_router(router)
    app.mount("/uploads", StaticFiles(directory=str(cfg.uploads_dir)), name="uploads")
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Configure logging and launch the uvicorn ASGI server.

    Reads host and port from :data:`~fluxkontext.core.config.config`
    (``FLUXKONTEXT_SERVER_HOST`` and ``PORT``/``FLUXKONTEXT_SERVER_PORT``).
    Defaults to ``0.0.0.0:3000``.

    This function is registered as the ``fluxkontext`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    token_state = "set" if config.replicate_connected else "missing"
    logger.info("Flux Kontext API %s starting on port %s", __version__, config.server_port)
    logger.info("REPLICATE_API_TOKEN: %s", token_state)
    logger.info("Available models: %s", ", ".join(model_keys()))
    logger.info("Health check: http://localhost:%s/health", config.server_port)

    uvicorn.run(
        "fluxkontext.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
