"""
Ticket Printer package

Turns rendered ticket images into thermal printer jobs and delivers them:
- printing: bi-level conversion, raster encoding, command framing, transport
- core: configuration and logging

Typical use:

    from ticket_printer import PrinterTarget, print_image
    print_image("ticket.png", PrinterTarget(name="receipt"))
"""

from __future__ import annotations

from .core import configure_logging, get_settings
from .printing import (
    Bitmap,
    DecodeError,
    EncodeError,
    FrameOptions,
    PrinterProfile,
    PrinterTarget,
    PrintingError,
    PrintJob,
    PrintWorker,
    RetryPolicy,
    SendResult,
    TransportError,
    build_job,
    convert,
    encode,
    frame,
    get_profile,
    print_image,
    send,
)

__version__ = "0.1.0"

__all__ = [
    "Bitmap",
    "DecodeError",
    "EncodeError",
    "FrameOptions",
    "PrintJob",
    "PrintWorker",
    "PrinterProfile",
    "PrinterTarget",
    "PrintingError",
    "RetryPolicy",
    "SendResult",
    "TransportError",
    "build_job",
    "configure_logging",
    "convert",
    "encode",
    "frame",
    "get_profile",
    "get_settings",
    "print_image",
    "send",
]
