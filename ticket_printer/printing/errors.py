"""
Exception types for the printing pipeline.

- DecodeError: the input image cannot be decoded (never retried)
- EncodeError: an internal raster/framing invariant was violated (fatal to the job)
- TransportError: the printer queue or device rejected the job after all retries
"""

from __future__ import annotations

from typing import Optional


class PrintingError(Exception):
    """Base class for all printing pipeline failures."""


class DecodeError(PrintingError):
    """Raised when an input image cannot be decoded."""


class EncodeError(PrintingError):
    """Raised when a bitmap or raster line set cannot be encoded consistently."""


class QueueRejectedError(PrintingError):
    """Raised for a single print-queue submission that exited non-zero."""

    def __init__(self, returncode: int, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"print queue rejected job (exit {returncode}){detail}")


class TransportError(PrintingError):
    """
    Raised when a job could not be delivered.

    Carries the number of attempts made and the last underlying error.
    """

    def __init__(self, message: str, *, attempts: int, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error

    def __str__(self) -> str:
        base = super().__str__()
        if self.last_error is None:
            return f"{base} (attempts={self.attempts})"
        return f"{base} (attempts={self.attempts}): {self.last_error}"


__all__ = ["DecodeError", "EncodeError", "PrintingError", "QueueRejectedError", "TransportError"]
