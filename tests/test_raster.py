import random

import pytest

from ticket_printer.printing.bilevel import Bitmap
from ticket_printer.printing.errors import EncodeError
from ticket_printer.printing.raster import RasterHeader, bytes_per_line, decode_lines, encode


def _random_bitmap(width, height, seed=0):
    rng = random.Random(seed)
    return Bitmap(width, height, bytes(rng.randint(0, 1) for _ in range(width * height)))


def test_alternating_row_packs_to_0xaa():
    bm = Bitmap.from_rows([[True, False] * 4])
    header, lines = encode(bm)
    assert header.bytes_per_line == 1
    assert lines == [b"\xaa"]


def test_nine_black_pixels_leave_padding_white():
    bm = Bitmap.from_rows([[True] * 9])
    header, lines = encode(bm)
    assert header.bytes_per_line == 2
    assert header.encode() == b"\x00\x02\x00"
    assert lines == [b"\xff\x80"]


@pytest.mark.parametrize("width", [1, 7, 8, 9, 15, 16, 17, 383, 384, 512, 513])
def test_every_line_matches_bytes_per_line(width):
    header, lines = encode(_random_bitmap(width, 5, seed=width))
    assert header.bytes_per_line == bytes_per_line(width) == (width + 7) // 8
    assert len(lines) == 5
    assert all(len(line) == header.bytes_per_line for line in lines)


@pytest.mark.parametrize("width,height", [(1, 1), (9, 3), (64, 10), (100, 7)])
def test_decoding_lines_reproduces_bitmap(width, height):
    bm = _random_bitmap(width, height, seed=width * height)
    _, lines = encode(bm)
    assert decode_lines(lines, width) == bm


def test_rows_keep_top_to_bottom_order():
    bm = Bitmap.from_rows([[True] + [False] * 7, [False] * 7 + [True], [False] * 8])
    _, lines = encode(bm)
    assert lines == [b"\x80", b"\x01", b"\x00"]


def test_header_is_little_endian():
    header = RasterHeader(density=3, bytes_per_line=263, height=1)
    assert header.encode() == bytes([3, 0x07, 0x01])


@pytest.mark.parametrize("width,height", [(0, 0), (0, 4), (5, 0)])
def test_empty_bitmap_yields_no_lines(width, height):
    header, lines = encode(Bitmap(width, height, b"\x00" * (width * height)))
    assert lines == []
    assert header.bytes_per_line == 0
    assert header.encode() == b"\x00\x00\x00"


def test_wider_than_printer_is_rejected():
    with pytest.raises(EncodeError):
        encode(_random_bitmap(520, 1), max_width=512)
    header, _ = encode(_random_bitmap(512, 1), max_width=512)
    assert header.bytes_per_line == 64


def test_density_must_fit_one_byte():
    with pytest.raises(EncodeError):
        encode(_random_bitmap(8, 1), density=256)


def test_encoding_is_deterministic():
    bm = _random_bitmap(30, 6)
    assert encode(bm) == encode(bm)


def test_decode_rejects_short_line():
    with pytest.raises(EncodeError):
        decode_lines([b"\xff"], 9)


@pytest.mark.parametrize("width,height", [(0, 4), (5, 0), (0, 0)])
def test_degenerate_bitmaps_round_trip_with_height(width, height):
    bm = Bitmap(width, height, b"")
    header, lines = encode(bm)
    assert decode_lines(lines, width, height=header.height if lines else height) == bm


def test_decode_rejects_missing_rows():
    with pytest.raises(EncodeError):
        decode_lines([b"\xff"], 8, height=2)
    with pytest.raises(EncodeError):
        decode_lines([], 8, height=2)
