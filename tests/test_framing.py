import pytest
from pydantic import ValidationError

from ticket_printer.printing.bilevel import Bitmap
from ticket_printer.printing.errors import EncodeError
from ticket_printer.printing.framing import FrameOptions, frame
from ticket_printer.printing.profiles import get_profile
from ticket_printer.printing.raster import RasterHeader, encode

INIT = b"\x1b@"
RASTER = b"\x1dv0"


def _encoded(rows):
    return encode(Bitmap.from_rows(rows))


def test_minimal_job_layout():
    header, lines = _encoded([[True, False] * 4])
    job = frame(header, lines, FrameOptions(align="left", feed_lines=0, cut=False), get_profile("escpos"))
    assert job.data == INIT + RASTER + b"\x00\x01\x00" + b"\x01\x00" + b"\xaa" + INIT
    assert (job.width, job.height, job.profile) == (8, 1, "escpos")


def test_full_options_order():
    header, lines = _encoded([[True] * 9, [False] * 9])
    job = frame(header, lines, FrameOptions(align="center", feed_lines=2, cut=True), get_profile("escpos"), width=9)
    expected = (
        INIT
        + b"\x1ba\x01"
        + RASTER
        + b"\x00\x02\x00"
        + b"\x02\x00"
        + b"\xff\x80"
        + b"\x00\x00"
        + b"\n\n"
        + b"\x1dV\x00"
        + INIT
    )
    assert job.data == expected
    assert job.width == 9


def test_right_alignment_sequence():
    header, lines = _encoded([[True] * 8])
    job = frame(header, lines, FrameOptions(align="right", feed_lines=0, cut=False), get_profile("escpos"))
    assert job.data.startswith(INIT + b"\x1ba\x02" + RASTER)


@pytest.mark.parametrize(
    "options",
    [
        FrameOptions(),
        FrameOptions(align="center", feed_lines=0, cut=False),
        FrameOptions(align="right", feed_lines=10, cut=True),
    ],
)
@pytest.mark.parametrize("model", ["escpos", "escpos-58mm", "escpos-line"])
def test_every_job_starts_with_initialize_and_ends_with_reset(options, model):
    profile = get_profile(model)
    header, lines = _encoded([[True, False, True]] * 4)
    job = frame(header, lines, options, profile)
    assert job.data.startswith(profile.initialize)
    assert job.data.endswith(profile.end)


def test_empty_raster_still_framed():
    header, lines = encode(Bitmap(0, 0, b""))
    job = frame(header, lines, FrameOptions(feed_lines=1, cut=True), get_profile("escpos"))
    assert job.data == INIT + b"\n" + b"\x1dV\x00" + INIT
    assert job.height == 0


def test_bands_repeat_raster_command_per_row_group():
    profile = get_profile("escpos").model_copy(update={"band_height": 2})
    header, lines = _encoded([[True] * 8, [False] * 8, [True] * 8])
    job = frame(header, lines, FrameOptions(feed_lines=0, cut=False), profile)
    body = job.data[len(INIT) : -len(INIT)]
    assert body == (
        RASTER + b"\x00\x01\x00" + b"\x02\x00" + b"\xff\x00"
        + RASTER + b"\x00\x01\x00" + b"\x01\x00" + b"\xff"
    )


def test_line_per_command_profile():
    header, lines = _encoded([[True] * 8] * 3)
    job = frame(header, lines, FrameOptions(feed_lines=0, cut=False), get_profile("escpos-line"))
    assert job.data.count(RASTER + b"\x00\x01\x00\x01\x00\xff") == 3


def test_profile_without_height_field():
    profile = get_profile("escpos").model_copy(update={"raster_includes_height": False, "band_height": None})
    header, lines = _encoded([[True] * 8, [True] * 8])
    job = frame(header, lines, FrameOptions(feed_lines=0, cut=False), profile)
    assert job.data == INIT + RASTER + b"\x00\x01\x00" + b"\xff\xff" + INIT


def test_framing_is_idempotent():
    header, lines = _encoded([[True, False, False]] * 5)
    options = FrameOptions(align="center")
    profile = get_profile("escpos")
    assert frame(header, lines, options, profile).data == frame(header, lines, options, profile).data


def test_inconsistent_line_length_is_an_encode_error():
    header = RasterHeader(density=0, bytes_per_line=2, height=2)
    with pytest.raises(EncodeError):
        frame(header, [b"\xff\x00", b"\xff"], FrameOptions(), get_profile("escpos"))


def test_header_row_count_must_match_lines():
    header = RasterHeader(density=0, bytes_per_line=1, height=3)
    with pytest.raises(EncodeError):
        frame(header, [b"\xff"], FrameOptions(), get_profile("escpos"))


def test_options_validation():
    with pytest.raises(ValidationError):
        FrameOptions(feed_lines=-1)
    with pytest.raises(ValidationError):
        FrameOptions(align="justify")
