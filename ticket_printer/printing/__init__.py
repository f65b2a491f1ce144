"""
Printing subsystem for Ticket Printer.

This package groups the image-to-printer pipeline:

- bilevel: decoded image to 1-bit Bitmap (threshold, optional inversion)
- raster: Bitmap to bytes-per-line header and raster lines
- profiles: printer opcode tables as data
- framing: raster plus control sequences into a PrintJob
- transport: PrintJob delivery to a print queue or device, with retries
- render: diagnostic test page
- worker: orchestration, per-printer locking, and a background job queue

For convenience, common names are re-exported for easy import.
"""

from .errors import *
from .bilevel import *
from .raster import *
from .profiles import *
from .framing import *
from .transport import *
from .render import *
from .worker import *
