"""Clip request orchestration.

A request moves through ``VALIDATING -> RETRIEVING -> WAITING_SOURCE ->
TRIMMING -> WAITING_TRIMMED -> RESPONDING -> CLEANING_UP -> DONE``. Any
failure moves it to ``ERROR``, which is always followed by ``CLEANING_UP``
and ``DONE``. Retries only happen inside yt-dlp, never across states.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from clipper.config import DEFAULT_QUALITY, ClipperSettings, TrimStrategy
from clipper.errors import ClipError, DownstreamError
from clipper.helpers.cleanup import cleanup_paths
from clipper.helpers.formatting import format_bytes
from clipper.helpers.logging import log_timing, notify, run_step
from clipper.interfaces.progress import ClipEvent, ClipEventType, ClipObserver
from clipper.steps.cut import FfmpegTranscoder, Transcoder, staging_path_for, trim_in_place
from clipper.steps.download import (
    Downloader,
    DownloadSection,
    RetrievalJob,
    YtDlpDownloader,
    build_format_selector,
)
from clipper.steps.timecode import parse_timecode, validate_range
from clipper.steps.watch import FileWatcher, PollingFileWatcher

logger = logging.getLogger(__name__)

Cleaner = Callable[[Iterable[Path]], Any]


class ClipState(str, Enum):
    VALIDATING = "validating"
    RETRIEVING = "retrieving"
    WAITING_SOURCE = "waiting_source"
    TRIMMING = "trimming"
    WAITING_TRIMMED = "waiting_trimmed"
    RESPONDING = "responding"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ClipRequest:
    url: str
    start: str
    end: str
    quality: str = DEFAULT_QUALITY


@dataclass(frozen=True)
class ClipPlan:
    start_seconds: int
    end_seconds: int
    duration_seconds: int
    format_selector: str


@dataclass
class ClipJob:
    """Everything one request owns on disk, plus where it is in its lifecycle."""

    job_id: str
    request: ClipRequest
    work_dir: Path
    plan: ClipPlan | None = None
    state: ClipState = ClipState.VALIDATING
    output_path: Path | None = None
    output_size: int = 0
    error: ClipError | None = None
    history: list[ClipState] = field(default_factory=list)
    _cleaned: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def source_path(self) -> Path:
        return self.work_dir / f"output_{self.job_id}.mp4"

    @property
    def trimmed_path(self) -> Path:
        return self.work_dir / f"trimmed_{self.job_id}.mp4"

    @property
    def temp_paths(self) -> list[Path]:
        """Every path this request may have created, directory last."""
        source = self.source_path
        return [
            source,
            source.with_name(source.name + ".part"),
            staging_path_for(source),
            self.trimmed_path,
            self.work_dir,
        ]

    def require_output(self) -> Path:
        if self.output_path is None:
            raise DownstreamError(f"Job {self.job_id} finished without an output file")
        return self.output_path


def new_job_id() -> str:
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class ClipOrchestrator:
    """Runs one clip request end to end against injectable tool invokers."""

    def __init__(
        self,
        settings: ClipperSettings,
        *,
        downloader: Downloader | None = None,
        watcher: FileWatcher | None = None,
        transcoder: Transcoder | None = None,
        cleaner: Cleaner = cleanup_paths,
        observer: ClipObserver | None = None,
    ):
        self.settings = settings
        self.downloader = downloader or YtDlpDownloader(settings)
        self.watcher = watcher or PollingFileWatcher(
            settings.watch_interval_seconds, settings.watch_timeout_seconds
        )
        self.transcoder = transcoder or FfmpegTranscoder(settings)
        self.cleaner = cleaner
        self.observer = observer
        self._slots = threading.BoundedSemaphore(max(1, settings.max_concurrent_jobs))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def plan(self, request: ClipRequest) -> ClipPlan:
        """Validate ``request`` and derive the numbers the tools need."""

        start_seconds = parse_timecode(request.start)
        end_seconds = parse_timecode(request.end)
        duration = validate_range(start_seconds, end_seconds, self.settings.max_clip_seconds)
        selector = build_format_selector(request.quality, self.settings.quality_formats)
        return ClipPlan(
            start_seconds=start_seconds,
            end_seconds=end_seconds,
            duration_seconds=duration,
            format_selector=selector,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _advance(self, job: ClipJob, state: ClipState) -> None:
        job.state = state
        job.history.append(state)
        logger.debug("Job %s -> %s", job.job_id, state.value)
        notify(
            ClipEvent(
                type=ClipEventType.STATE_CHANGED,
                job_id=job.job_id,
                message=state.value,
            ),
            self.observer,
        )

    def _progress_hook(self, job: ClipJob, step: str):
        def _hook(fraction: float, data: dict[str, Any]) -> None:
            notify(ClipEvent.progress(job.job_id, step, fraction, **data), self.observer)

        return _hook

    def _command_hook(self, job: ClipJob, step: str):
        def _hook(cmd: list[str]) -> None:
            notify(
                ClipEvent(
                    type=ClipEventType.COMMAND_STARTED,
                    job_id=job.job_id,
                    step=step,
                    message=" ".join(cmd),
                ),
                self.observer,
            )

        return _hook

    def _retrieval_job(self, job: ClipJob, plan: ClipPlan) -> RetrievalJob:
        section = None
        if self.settings.use_section_download:
            section = DownloadSection(plan.start_seconds, plan.end_seconds)
        return RetrievalJob(
            source_url=job.request.url,
            format_selector=plan.format_selector,
            output_path=job.source_path,
            section=section,
        )

    def _trim(self, job: ClipJob, plan: ClipPlan) -> Path:
        # A section download already starts at the requested offset.
        start = 0 if self.settings.use_section_download else plan.start_seconds
        progress = self._progress_hook(job, "trim")
        on_command = self._command_hook(job, "trim")
        if self.settings.trim_strategy is TrimStrategy.IN_PLACE:
            return trim_in_place(
                self.transcoder,
                job.source_path,
                start=start,
                duration=plan.duration_seconds,
                progress_callback=progress,
                on_command=on_command,
            )
        self.transcoder.trim(
            job.source_path,
            job.trimmed_path,
            start=start,
            duration=plan.duration_seconds,
            progress_callback=progress,
            on_command=on_command,
        )
        return job.trimmed_path

    def run(self, request: ClipRequest) -> ClipJob:
        """Produce the trimmed clip for ``request``.

        Returns the job in ``RESPONDING`` state with ``output_path`` set. The
        caller must hand the bytes back and then call :meth:`finish`. On any
        failure the job is cleaned up here and the error re-raised.
        """

        job_id = new_job_id()
        job = ClipJob(
            job_id=job_id,
            request=request,
            work_dir=Path(self.settings.temp_dir) / job_id,
        )
        notify(
            ClipEvent(
                type=ClipEventType.REQUEST_STARTED,
                job_id=job.job_id,
                data={"url": request.url, "start": request.start, "end": request.end, "quality": request.quality},
            ),
            self.observer,
        )
        logger.info(
            "Received request %s: url=%s start=%s end=%s quality=%s",
            job.job_id,
            request.url,
            request.start,
            request.end,
            request.quality,
        )

        try:
            self._advance(job, ClipState.VALIDATING)
            plan = self.plan(request)
            job.plan = plan

            with self._slots:
                job.work_dir.mkdir(parents=True, exist_ok=True)

                self._advance(job, ClipState.RETRIEVING)
                run_step(
                    "Downloading source video",
                    self.downloader.download,
                    self._retrieval_job(job, plan),
                    progress_callback=self._progress_hook(job, "retrieve"),
                    step_id="retrieve",
                    job_id=job.job_id,
                    observer=self.observer,
                )

                self._advance(job, ClipState.WAITING_SOURCE)
                source_size = run_step(
                    "Waiting for source file",
                    self.watcher.wait_until_stable,
                    job.source_path,
                    step_id="wait_source",
                    job_id=job.job_id,
                    observer=self.observer,
                )
                logger.info("Source file ready: %s", format_bytes(source_size))

                self._advance(job, ClipState.TRIMMING)
                output = run_step(
                    f"Trimming {plan.duration_seconds}s from {plan.start_seconds}s",
                    self._trim,
                    job,
                    plan,
                    step_id="trim",
                    job_id=job.job_id,
                    observer=self.observer,
                )

                self._advance(job, ClipState.WAITING_TRIMMED)
                job.output_size = run_step(
                    "Waiting for trimmed file",
                    self.watcher.wait_until_stable,
                    output,
                    step_id="wait_trimmed",
                    job_id=job.job_id,
                    observer=self.observer,
                )
                logger.info("Trimmed file ready: %s", format_bytes(job.output_size))

            job.output_path = output
            self._advance(job, ClipState.RESPONDING)
            return job
        except ClipError as exc:
            self._fail(job, exc)
            raise
        except Exception as exc:
            # Filesystem and other unexpected errors still answer as a processing failure.
            error = DownstreamError(f"{type(exc).__name__}: {exc}")
            self._fail(job, error)
            raise error from exc

    def _fail(self, job: ClipJob, error: ClipError) -> None:
        job.error = error
        logger.error("Request %s failed in %s: %s", job.job_id, job.state.value, error)
        self._advance(job, ClipState.ERROR)
        self.finish(job)

    def finish(self, job: ClipJob) -> None:
        """Delete every artifact owned by ``job``; later calls are no-ops."""

        with job._lock:
            if job._cleaned:
                return
            job._cleaned = True

        self._advance(job, ClipState.CLEANING_UP)
        try:
            self.cleaner(job.temp_paths)
        except Exception:
            logger.exception("Cleanup failed for job %s", job.job_id)
        logger.info("Temporary files cleaned up for job %s", job.job_id)
        self._advance(job, ClipState.DONE)
        notify(
            ClipEvent(
                type=ClipEventType.REQUEST_COMPLETED,
                job_id=job.job_id,
                data={"success": job.error is None and job.output_path is not None},
            ),
            self.observer,
        )

    def clip_to(self, request: ClipRequest, destination: str | Path) -> Path:
        """Run ``request`` and copy the finished clip to ``destination``."""

        job = self.run(request)
        dest = Path(destination)
        try:
            output = job.require_output()
            dest.parent.mkdir(parents=True, exist_ok=True)
            with log_timing(
                f"Saving clip to {dest}", step_id="save", job_id=job.job_id, observer=self.observer
            ):
                shutil.copyfile(output, dest)
        finally:
            self.finish(job)
        return dest


__all__ = [
    "ClipJob",
    "ClipOrchestrator",
    "ClipPlan",
    "ClipRequest",
    "ClipState",
    "new_job_id",
]
