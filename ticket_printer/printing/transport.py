"""
Delivery of framed print jobs to a printer.

Two delivery modes, chosen by the target:
- a device path (e.g. /dev/usb/lp0) is opened and written directly
- otherwise the bytes are piped into the OS print queue (`lp -d NAME -o raw`)

Failed attempts are retried according to a RetryPolicy; every retry resends the
whole job. This module performs no logging: callers receive a SendResult or a
TransportError and decide what to report.
"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, TypeVar

from .errors import DecodeError, EncodeError, QueueRejectedError, TransportError
from .framing import PrintJob

T = TypeVar("T")

DEFAULT_QUEUE_COMMAND: Tuple[str, ...] = ("lp", "-o", "raw")
DEFAULT_QUEUE_TIMEOUT = 30.0


def is_retryable(exc: BaseException) -> bool:
    """Default predicate: I/O and queue failures are transient, pipeline defects are not."""
    if isinstance(exc, (DecodeError, EncodeError)):
        return False
    return isinstance(exc, (OSError, subprocess.SubprocessError, QueueRejectedError))


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay bounded retry."""

    max_attempts: int = 3
    delay: float = 2.0
    retryable: Callable[[BaseException], bool] = is_retryable
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")

    def call(
        self,
        func: Callable[[], T],
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> Tuple[T, int]:
        """
        Run `func` until it succeeds, returning (result, attempts).

        Raises:
            TransportError once attempts are exhausted or a non-retryable error occurs.
            DecodeError/EncodeError are re-raised unchanged.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(), attempt
            except (DecodeError, EncodeError):
                raise
            except Exception as e:
                if not self.retryable(e):
                    raise TransportError("job delivery failed", attempts=attempt, last_error=e) from e
                if attempt >= self.max_attempts:
                    raise TransportError("job delivery failed after retries", attempts=attempt, last_error=e) from e
                if on_retry is not None:
                    on_retry(attempt, e)
                self.sleep(self.delay)


NO_RETRY = RetryPolicy(max_attempts=1, delay=0.0)


@dataclass(frozen=True)
class PrinterTarget:
    """
    Where to send a job: a logical queue name, a device path, or both.

    When a device path is present it is used; the name then only labels the target.
    """

    name: Optional[str] = None
    device_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.name or self.device_path):
            raise ValueError("a printer target needs a queue name or a device path")

    @property
    def mode(self) -> str:
        return "device" if self.device_path else "queue"

    @property
    def key(self) -> str:
        """Identity of the physical destination, used for per-printer locking."""
        return f"device:{self.device_path}" if self.device_path else f"queue:{self.name}"

    def __str__(self) -> str:
        return self.device_path or self.name or "?"


@dataclass(frozen=True)
class SendResult:
    """
    Outcome of one send.

    `Transport.send` only returns successful results (error is None); a failed
    delivery raises TransportError, which `from_error` turns into a result.
    """

    success: bool
    attempts: int
    error: Optional[BaseException] = None

    @classmethod
    def from_error(cls, exc: TransportError) -> "SendResult":
        return cls(success=False, attempts=exc.attempts, error=exc.last_error or exc)


def write_device(path: str, data: bytes) -> None:
    """
    Write the whole buffer to an existing device node.

    The node is never created: a missing device (printer unplugged) raises
    FileNotFoundError instead of leaving the job in a regular file.
    """
    fd = os.open(path, os.O_WRONLY)
    with os.fdopen(fd, "wb", buffering=0) as dev:
        view = memoryview(data)
        while view:
            written = dev.write(view)
            if not written:
                raise OSError(f"device {path} accepted no bytes")
            view = view[written:]


@dataclass
class Transport:
    """
    Sends PrintJobs using a retry policy.

    `runner` and `writer` are the process and device seams; tests replace them.
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    queue_command: Sequence[str] = DEFAULT_QUEUE_COMMAND
    queue_timeout: float = DEFAULT_QUEUE_TIMEOUT
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run
    writer: Callable[[str, bytes], None] = write_device

    def _submit_to_queue(self, name: str, data: bytes) -> None:
        cmd = [*self.queue_command, "-d", name]
        proc = self.runner(cmd, input=data, capture_output=True, timeout=self.queue_timeout, check=False)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", "replace").strip() if proc.stderr else ""
            raise QueueRejectedError(proc.returncode, stderr)

    def _attempt(self, target: PrinterTarget, job: PrintJob) -> None:
        if target.device_path:
            self.writer(target.device_path, job.data)
        else:
            self._submit_to_queue(target.name or "", job.data)

    def send(
        self,
        target: PrinterTarget,
        job: PrintJob,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> SendResult:
        """
        Deliver the complete job, retrying per policy.

        Returns a successful SendResult once the queue or device accepted every byte.

        Raises:
            TransportError carrying the attempt count and last underlying error.
        """
        _, attempts = self.policy.call(lambda: self._attempt(target, job), on_retry=on_retry)
        return SendResult(success=True, attempts=attempts)


def send(target: PrinterTarget, job: PrintJob, policy: Optional[RetryPolicy] = None) -> SendResult:
    """Send a job with a default Transport and the given (or default) retry policy."""
    return Transport(policy=policy or RetryPolicy()).send(target, job)


__all__ = [
    "DEFAULT_QUEUE_COMMAND",
    "DEFAULT_QUEUE_TIMEOUT",
    "NO_RETRY",
    "PrinterTarget",
    "RetryPolicy",
    "SendResult",
    "Transport",
    "is_retryable",
    "send",
    "write_device",
]
