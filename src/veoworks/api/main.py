"""Veoworks Video Generator: FastAPI Application.

This module defines the FastAPI application, all REST API routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Service client**: one :class:`~veoworks.core.client.VideoServiceClient`
  is built in the lifespan handler.  Without an API key the client refuses to
  initialise and the server does not start.
- **Jobs**: ``POST /api/generate`` starts a background job
  (:class:`~veoworks.core.jobs.JobManager`) and returns immediately.  The page
  polls ``GET /api/jobs/{id}`` for progress text and the final video URL.
- **Assets**: uploaded image previews and downloaded videos live in an
  in-memory :class:`~veoworks.core.assets.AssetStore` and are served from
  ``/api/assets/{id}`` until released.
- **The HTML page** is served as a raw ``HTMLResponse``; all dynamic data is
  fetched via ``/api/config`` on page load.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Serve the main HTML page
GET       ``/api/config``               Models, aspect ratios, resolutions
POST      ``/api/images``               Upload a reference image
DELETE    ``/api/images/{id}``          Remove an uploaded image
POST      ``/api/generate``             Start a generation job
GET       ``/api/jobs/{id}``            Job progress and result
GET       ``/api/sessions/{id}/job``    Active job of a session
DELETE    ``/api/jobs/{id}``            Cancel a running job
GET       ``/api/assets/{id}``          Serve a stored image or video
DELETE    ``/api/assets/{id}``          Release a stored image or video
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    veoworks

Direct invocation::

    python -m veoworks.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from veoworks import __version__
from veoworks.api.models import GenerateRequest, ImageUploadResponse
from veoworks.api.uploads import UploadStore
from veoworks.core.assets import AssetStore
from veoworks.core.client import VideoServiceClient
from veoworks.core.config import VeoworksConfig, config
from veoworks.core.encoding import load_image_file
from veoworks.core.errors import ValidationError
from veoworks.core.generator import VideoService
from veoworks.core.jobs import JobConflictError, JobManager
from veoworks.core.models import AspectRatio, Resolution, VideoModel, build_generation_request

logger = logging.getLogger(__name__)


def create_app(
    cfg: VeoworksConfig | None = None,
    client: VideoService | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Configuration; defaults to the global ``config`` instance.
        client: Service client to use instead of building one from *cfg*.
            The application only closes clients it created itself.

    Returns:
        The configured application.
    """
    cfg = cfg if cfg is not None else config

    # -----------------------------------------------------------------------
    # Application lifecycle: client, stores and job manager.
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the service client and stores on startup; tear down on exit.

        Raises:
            ConfigurationError: On startup, if no API key is configured and no
                client was injected.
        """
        # --- Startup -------------------------------------------------------
        owns_client = client is None
        service = client if client is not None else VideoServiceClient.from_config(cfg)

        assets = AssetStore()
        app.state.client = service
        app.state.assets = assets
        app.state.uploads = UploadStore(assets, max_images=cfg.upload_retention)
        app.state.jobs = JobManager(
            service,
            assets,
            poll_interval=cfg.poll_interval,
            poll_timeout=cfg.poll_timeout,
            retention=cfg.job_retention,
        )
        logger.info("Video service client initialised.")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await app.state.jobs.shutdown()
        app.state.uploads.clear()
        assets.clear()
        if owns_client:
            await service.aclose()
        logger.info("Video service client closed on shutdown.")

    app = FastAPI(
        title="Veoworks Video Generator",
        description="Text and image to video generation with a remote video model.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/static", StaticFiles(directory=str(cfg.static_dir)), name="static")

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Serve the main application HTML page.

        Raises:
            HTTPException: 404 if ``index.html`` is not found.
        """
        index_path = cfg.templates_dir / "index.html"
        if index_path.exists():
            return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
        raise HTTPException(status_code=404, detail="index.html not found")

    @app.get("/api/config")
    async def get_config() -> dict:
        """Return the option lists and defaults for the page's selectors."""
        return {
            "version": __version__,
            "models": [{"id": m.value, "label": m.label} for m in VideoModel],
            "aspect_ratios": [a.value for a in AspectRatio],
            "resolutions": [r.value for r in Resolution],
            "defaults": {
                "model": cfg.default_model.value,
                "aspect_ratio": cfg.default_aspect_ratio.value,
                "resolution": cfg.default_resolution.value,
            },
            "poll_interval": cfg.poll_interval,
            "max_upload_bytes": cfg.max_upload_bytes,
        }

    @app.post("/api/images", response_model=ImageUploadResponse)
    async def upload_image(
        file: UploadFile = File(...),
        replace_image_id: str | None = Form(default=None),
    ) -> ImageUploadResponse:
        """Validate, encode and store a reference image.

        Raises:
            HTTPException: 400 if the upload is not a readable image or is
                too large.
        """
        data = await file.read()
        try:
            encoded = await load_image_file(
                data, file.content_type, max_bytes=cfg.max_upload_bytes
            )
        except ValidationError as e:
            logger.warning(f"Rejected upload {file.filename!r}: {e}")
            raise HTTPException(status_code=400, detail=str(e)) from e

        image = app.state.uploads.add(
            data, encoded, file.filename, replaces=replace_image_id
        )
        return ImageUploadResponse(
            image_id=image.image_id,
            preview_url=image.preview.url,
            mime_type=encoded.mime_type,
            filename=image.filename,
        )

    @app.delete("/api/images/{image_id}")
    async def delete_image(image_id: str) -> dict:
        """Remove an uploaded image and release its preview.

        Raises:
            HTTPException: 404 if the image is not found.
        """
        if not app.state.uploads.remove(image_id):
            raise HTTPException(status_code=404, detail="Image not found")
        return {"success": True, "deleted": image_id}

    @app.post("/api/generate", status_code=202)
    async def generate(req: GenerateRequest) -> JSONResponse:
        """Start a video generation job.

        Returns:
            The new job (HTTP 202).  Poll ``GET /api/jobs/{job_id}``.

        Raises:
            HTTPException: 400 for an empty prompt, 404 for an unknown
                ``image_id``.

        A session that already has a job running gets HTTP 409 with the
        active job under ``job``, so the page can resume polling it.
        """
        image = None
        if req.image_id:
            upload = app.state.uploads.get(req.image_id)
            if upload is None:
                raise HTTPException(status_code=404, detail="Image not found")
            image = upload.encoded

        try:
            request = build_generation_request(req.prompt, image, req.to_generation_config())
            job = app.state.jobs.submit(req.session_id, request)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except JobConflictError as e:
            return JSONResponse(status_code=409, content={"detail": str(e), "job": e.job.to_dict()})

        return JSONResponse(status_code=202, content=job.to_dict())

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str) -> dict:
        """Return a job's state, progress message, error and video.

        Raises:
            HTTPException: 404 if the job is not found.
        """
        job = app.state.jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_dict()

    @app.get("/api/sessions/{session_id}/job")
    async def get_session_job(session_id: str) -> dict:
        """Return the session's active job, e.g. after a page reload.

        Raises:
            HTTPException: 404 if the session has no job running.
        """
        job = app.state.jobs.active_job(session_id)
        if job is None:
            raise HTTPException(status_code=404, detail="No active job")
        return job.to_dict()

    @app.delete("/api/jobs/{job_id}")
    async def cancel_job(job_id: str) -> dict:
        """Cancel a running job.  Finished jobs are returned unchanged.

        Raises:
            HTTPException: 404 if the job is not found.
        """
        job = await app.state.jobs.cancel(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_dict()

    @app.get("/api/assets/{asset_id}")
    async def get_asset(asset_id: str) -> Response:
        """Serve a stored image preview or video.

        Raises:
            HTTPException: 404 if the asset was never created or was released.
        """
        blob = app.state.assets.get(asset_id)
        if blob is None:
            raise HTTPException(status_code=404, detail="Asset not found")
        data, mime_type = blob
        return Response(content=data, media_type=mime_type)

    @app.delete("/api/assets/{asset_id}")
    async def release_asset(asset_id: str) -> dict:
        """Release a stored asset.

        Raises:
            HTTPException: 404 if the asset is unknown.
        """
        if not app.state.assets.release(asset_id):
            raise HTTPException(status_code=404, detail="Asset not found")
        return {"success": True, "released": asset_id}

    return app


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~veoworks.core.config.config`
    (``VEOWORKS_SERVER_HOST``, ``VEOWORKS_SERVER_PORT``,
    ``VEOWORKS_LOG_LEVEL``).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``veoworks`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Veoworks Video Generator %s", __version__)
    logger.info(f"Configuration: {config.model_dump(exclude={'api_key'})}")

    uvicorn.run(
        "veoworks.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
