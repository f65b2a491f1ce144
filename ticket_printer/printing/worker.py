"""
Print orchestration and background worker for Ticket Printer.

This module owns:
- build_job(): image -> bitmap -> raster -> framed PrintJob (pure, no I/O)
- print_image(): build and send one job, holding the target's lock while sending
- TargetLocks: one lock per physical printer so jobs never interleave on a device
- PrintWorker: a caller-owned thread-backed queue with an in-memory job registry
  (queued -> running -> success/error)

Nothing here is a process-wide singleton; callers create a PrintWorker (or call
print_image directly) and control its lifetime.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ticket_printer.core.config import PrinterSettings, get_settings
from ticket_printer.core.logging import job_context

from .bilevel import DEFAULT_THRESHOLD, ImageSource, convert
from .errors import PrintingError, TransportError
from .framing import FrameOptions, PrintJob, frame
from .profiles import PrinterProfile, get_profile, load_profiles
from .raster import encode
from .render import render_test_page
from .transport import PrinterTarget, RetryPolicy, SendResult, Transport

logger = logging.getLogger(__name__)

JOBS_MAX = 200


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_job(
    image: ImageSource,
    options: Optional[FrameOptions] = None,
    profile: Optional[PrinterProfile] = None,
    threshold: float = DEFAULT_THRESHOLD,
    invert: bool = False,
) -> PrintJob:
    """
    Convert, encode and frame one image. Pure: safe to run concurrently for different jobs.

    Raises:
        DecodeError if the image cannot be decoded.
        EncodeError if the image is wider than the profile allows.
    """
    profile = profile or get_profile()
    options = options or FrameOptions()
    bitmap = convert(image, threshold=threshold, invert=invert)
    header, lines = encode(bitmap, density=profile.density, max_width=profile.max_width)
    return frame(header, lines, options, profile, width=bitmap.width)


class TargetLocks:
    """Registry of one lock per printer target identity."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, target: PrinterTarget) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(target.key)
            if lock is None:
                lock = threading.Lock()
                self._locks[target.key] = lock
            return lock


def _log_retry(target: PrinterTarget):
    def _on_retry(attempt: int, exc: BaseException) -> None:
        logger.warning(f"Attempt {attempt} to {target} failed: {exc}; retrying")

    return _on_retry


def send_job(
    job: PrintJob,
    target: PrinterTarget,
    transport: Optional[Transport] = None,
    locks: Optional[TargetLocks] = None,
) -> SendResult:
    """
    Send an already built job, serialized on the target when `locks` is given.

    Raises:
        TransportError after the transport's retry policy is exhausted.
    """
    transport = transport or Transport()
    logger.info(f"Sending {len(job)} bytes ({job.width}x{job.height}, {job.profile}) to {target.mode} {target}")
    lock = locks.lock_for(target) if locks is not None else None
    try:
        if lock is not None:
            with lock:
                result = transport.send(target, job, on_retry=_log_retry(target))
        else:
            result = transport.send(target, job, on_retry=_log_retry(target))
    except TransportError as e:
        logger.error(f"Printing to {target} failed after {e.attempts} attempt(s): {e.last_error}")
        raise
    logger.info("Job accepted by %s after %d attempt(s)", target, result.attempts)
    return result


def print_image(
    image: ImageSource,
    target: PrinterTarget,
    *,
    options: Optional[FrameOptions] = None,
    profile: Optional[PrinterProfile] = None,
    threshold: float = DEFAULT_THRESHOLD,
    invert: bool = False,
    transport: Optional[Transport] = None,
    locks: Optional[TargetLocks] = None,
) -> SendResult:
    """
    Build and send one print job.

    Raises:
        DecodeError, EncodeError (not retried) or TransportError (after retries).
    """
    job = build_job(image, options=options, profile=profile, threshold=threshold, invert=invert)
    return send_job(job, target, transport=transport, locks=locks)


def target_from_settings(settings: PrinterSettings) -> PrinterTarget:
    """
    Raises:
        ValueError when neither a printer name nor a device path is configured.
    """
    return PrinterTarget(name=settings.printer_name, device_path=settings.device_path)


def transport_from_settings(settings: PrinterSettings) -> Transport:
    return Transport(
        policy=RetryPolicy(max_attempts=settings.retry_attempts, delay=settings.retry_delay_seconds),
        queue_command=tuple(settings.queue_command),
        queue_timeout=settings.queue_timeout_seconds,
    )


def profile_from_settings(settings: PrinterSettings) -> PrinterProfile:
    extra = load_profiles(settings.profiles_path) if settings.profiles_path else None
    return get_profile(settings.printer_model, extra)


def options_from_settings(settings: PrinterSettings) -> FrameOptions:
    return FrameOptions(align=settings.align, feed_lines=settings.feed_lines, cut=settings.cut)


class PrintWorker:
    """
    Background print queue bound to one configuration.

    Use as a context manager (or call start()/stop()) so the thread's lifetime
    is owned by the caller:

        with PrintWorker(settings) as w:
            job_id = w.submit(image)
            w.join()
    """

    def __init__(
        self,
        settings: Optional[PrinterSettings] = None,
        *,
        transport: Optional[Transport] = None,
        profile: Optional[PrinterProfile] = None,
        locks: Optional[TargetLocks] = None,
        jobs_max: int = JOBS_MAX,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or transport_from_settings(self.settings)
        self.profile = profile or profile_from_settings(self.settings)
        self.locks = locks or TargetLocks()
        self.jobs_max = jobs_max

        self._queue: queue.Queue[Optional[Dict[str, Any]]] = queue.Queue()
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._jobs_lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None

    # Lifecycle

    def start(self) -> "PrintWorker":
        """Start the worker thread (idempotent)."""
        if self._thread is not None and self._thread.is_alive():
            return self
        t = threading.Thread(target=self._run, daemon=True, name="ticket-printer-worker")
        t.start()
        self._thread = t
        logger.info("Background print worker started")
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish queued jobs, then stop the thread."""
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join(timeout)
        self._thread = None
        logger.info("Background print worker stopped")

    def join(self) -> None:
        """Block until every submitted job has been processed."""
        self._queue.join()

    def __enter__(self) -> "PrintWorker":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    # Job registry

    def _prune_jobs_if_needed(self) -> None:
        with self._jobs_lock:
            while len(self._jobs) > self.jobs_max:
                oldest_id = min(self._jobs.values(), key=lambda j: j["created_at"])["id"]
                self._jobs.pop(oldest_id, None)

    def _create_job(self, kind: str, meta: Optional[Mapping[str, Any]] = None) -> str:
        job_id = uuid.uuid4().hex
        now = _utc_now_iso()
        job: Dict[str, Any] = {
            "id": job_id,
            "type": kind,
            "status": "queued",
            "created_at": now,
            "updated_at": now,
        }
        if meta:
            job.update(meta)
        with self._jobs_lock:
            self._jobs[job_id] = job
            self._prune_jobs_if_needed()
        return job_id

    def _update_job(self, job_id: str, **updates: Any) -> None:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if not job:
                return
            job.update(updates)
            job["updated_at"] = _utc_now_iso()

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            return dict(job) if job else None

    def list_jobs(self) -> List[Dict[str, Any]]:
        """Jobs sorted by created_at, newest first."""
        with self._jobs_lock:
            items = [dict(v) for v in self._jobs.values()]
        items.sort(key=lambda j: j["created_at"], reverse=True)
        return items

    def status(self) -> Dict[str, Any]:
        alive = self._thread is not None and self._thread.is_alive()
        return {"worker_alive": alive, "queue_size": self._queue.qsize(), "jobs": len(self._jobs)}

    # Submission

    def submit(
        self,
        image: ImageSource,
        target: Optional[PrinterTarget] = None,
        options: Optional[FrameOptions] = None,
    ) -> str:
        """
        Queue an image for printing and return the job id.

        Raises:
            ValueError when no target is given and none is configured.
        """
        target = target or target_from_settings(self.settings)
        job_id = self._create_job("image", meta={"target": str(target)})
        self._queue.put(
            {"job_id": job_id, "image": image, "target": target, "options": options or options_from_settings(self.settings)}
        )
        return job_id

    def enqueue_test_print(self, target: Optional[PrinterTarget] = None) -> str:
        """Queue the diagnostic test page at the profile's full width."""
        page = render_test_page(self.profile.max_width, title=f"Test page: {self.profile.name}")
        job_id = self.submit(page, target=target, options=FrameOptions(align="left", feed_lines=3, cut=True))
        self._update_job(job_id, type="test")
        logger.info("enqueue_test_print: queued job id=%s queue_size=%d", job_id, self._queue.qsize())
        return job_id

    # Worker loop

    def _process(self, item: Dict[str, Any]) -> None:
        job_id = item["job_id"]
        self._update_job(job_id, status="running")
        with job_context(job_id):
            try:
                result = print_image(
                    item["image"],
                    item["target"],
                    options=item["options"],
                    profile=self.profile,
                    threshold=self.settings.threshold,
                    invert=self.settings.invert,
                    transport=self.transport,
                    locks=self.locks,
                )
            except TransportError as e:
                failed = SendResult.from_error(e)
                self._update_job(job_id, status="error", error=str(e), attempts=failed.attempts)
            except PrintingError as e:
                logger.error(f"Job could not be built: {e}")
                self._update_job(job_id, status="error", error=str(e), attempts=0)
            else:
                self._update_job(job_id, status="success", attempts=result.attempts)

    def _run(self) -> None:
        """Process queued jobs until the stop sentinel. Never raises."""
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self._process(item)
            except Exception as e:
                logger.exception(f"Job failed: {e}")
                self._update_job(item["job_id"], status="error", error=str(e))
            finally:
                self._queue.task_done()


__all__ = [
    "JOBS_MAX",
    "PrintWorker",
    "TargetLocks",
    "build_job",
    "options_from_settings",
    "print_image",
    "profile_from_settings",
    "send_job",
    "target_from_settings",
    "transport_from_settings",
]
