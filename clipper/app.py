"""FastAPI application exposing the clip endpoint.

Run with:
    uvicorn clipper.app:app --host 0.0.0.0 --port 3001
or the ``yt-clipper`` console script.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.background import BackgroundTask
from starlette.types import Receive, Scope, Send

from clipper.common.env import load_env
from clipper.config import DEFAULT_QUALITY, ClipperSettings, load_settings
from clipper.errors import ClipError, ClipRequestError
from clipper.helpers.logging import configure_logging
from clipper.pipeline import ClipOrchestrator, ClipRequest
from clipper.steps.download import get_tool_version

logger = logging.getLogger(__name__)

load_env()
settings: ClipperSettings = load_settings()
configure_logging(settings.log_level)

CLIP_FILENAME = "clip.mp4"

app = FastAPI(title="yt-clipper API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


def get_settings() -> ClipperSettings:
    return settings


@lru_cache(maxsize=1)
def get_orchestrator() -> ClipOrchestrator:
    return ClipOrchestrator(settings)


class TrimRequest(BaseModel):
    """Payload for cutting a clip out of a video."""

    url: str = Field(min_length=1)
    start: str = Field(min_length=1)
    end: str = Field(min_length=1)
    quality: Optional[str] = Field(default=None)

    @field_validator("url", "start", "end", "quality", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    def to_clip_request(self) -> ClipRequest:
        return ClipRequest(
            url=self.url,
            start=self.start,
            end=self.end,
            quality=self.quality or DEFAULT_QUALITY,
        )


class ClipFileResponse(FileResponse):
    """File response whose cleanup task also runs when the body was not fully sent."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        task, self.background = self.background, None
        try:
            await super().__call__(scope, receive, send)
        finally:
            if task is not None:
                await task()


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    missing = any(err.get("type") in ("missing", "string_too_short") for err in errors)
    message = "Missing required parameters" if missing else "Invalid request parameters"
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )


@app.exception_handler(ClipError)
async def _clip_error(request: Request, exc: ClipError) -> JSONResponse:
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc)
    if isinstance(exc, ClipRequestError):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Error processing video", "details": str(exc)},
    )


@app.post("/api/trim")
async def trim_clip(
    payload: TrimRequest,
    orchestrator: ClipOrchestrator = Depends(get_orchestrator),
) -> FileResponse:
    """Download, trim and return the requested clip as an mp4 attachment."""

    request = payload.to_clip_request()
    # Reject bad input before a worker thread or any subprocess is involved.
    orchestrator.plan(request)

    job = await asyncio.to_thread(orchestrator.run, request)
    try:
        output = job.require_output()
    except ClipError:
        orchestrator.finish(job)
        raise
    logger.info("Sending %s to client", output.name)
    return ClipFileResponse(
        path=output,
        media_type="video/mp4",
        filename=CLIP_FILENAME,
        headers={"Cache-Control": "no-store"},
        background=BackgroundTask(orchestrator.finish, job),
    )


@app.get("/api/trim")
async def trim_clip_get() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Use POST"},
        headers={"Allow": "POST"},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/test-ytdlp")
async def test_ytdlp(current: ClipperSettings = Depends(get_settings)) -> JSONResponse:
    """Report the installed yt-dlp version."""

    try:
        version = await asyncio.to_thread(get_tool_version, current)
    except ClipError as exc:
        logger.error("yt-dlp test error: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "error": str(exc)},
        )
    return JSONResponse(
        content={
            "status": "ok",
            "version": version,
            "message": "yt-dlp is working correctly",
        }
    )


def main() -> None:  # pragma: no cover - thin uvicorn wrapper
    import uvicorn

    logger.info("Server running on port %s", settings.port)
    logger.info("Temp directory: %s", settings.temp_dir)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    main()
