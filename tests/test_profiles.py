import json

import pytest
from pydantic import ValidationError

from ticket_printer.printing.profiles import BUILTIN_PROFILES, PrinterProfile, get_profile, load_profiles


def test_builtin_escpos_opcodes():
    p = get_profile("escpos")
    assert p.initialize == b"\x1b@"
    assert p.raster_command == b"\x1dv0"
    assert p.cut == b"\x1dV\x00"
    assert p.align("center") == b"\x1ba\x01"
    assert p.max_width == 512


def test_default_model_is_escpos():
    assert get_profile() is BUILTIN_PROFILES["escpos"]


def test_unknown_model_lists_known_names():
    with pytest.raises(KeyError) as exc:
        get_profile("nope")
    assert "escpos-58mm" in str(exc.value)


def test_hex_strings_are_parsed():
    p = PrinterProfile(
        name="custom",
        initialize="1b 40",
        align_left="1b 61 00",
        align_center="1b 61 01",
        align_right="1b 61 02",
        raster_command="1d 76 30",
        line_feed="0a",
        cut="1d 56 41 00",
        end="",
    )
    assert p.initialize == b"\x1b@"
    assert p.cut == b"\x1dVA\x00"
    assert p.end == b""
    dumped = p.model_dump(mode="json")
    assert dumped["raster_command"] == "1d 76 30"


def test_bad_hex_is_rejected():
    with pytest.raises(ValidationError):
        PrinterProfile.model_validate({**BUILTIN_PROFILES["escpos"].model_dump(), "cut": "zz"})


def test_unknown_alignment():
    with pytest.raises(ValueError):
        get_profile().align("justify")


def test_load_profiles_with_base(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps(
            {
                "kiosk": {"base": "escpos", "max_width": 576, "cut": "1d 56 01", "density": 1},
                "kiosk-slow": {"base": "kiosk", "band_height": 24},
            }
        ),
        encoding="utf-8",
    )
    loaded = load_profiles(path)
    assert loaded["kiosk"].name == "kiosk"
    assert loaded["kiosk"].max_width == 576
    assert loaded["kiosk"].cut == b"\x1dV\x01"
    assert loaded["kiosk"].initialize == b"\x1b@"
    assert loaded["kiosk-slow"].band_height == 24
    assert loaded["kiosk-slow"].max_width == 576
    assert get_profile("kiosk", loaded) is loaded["kiosk"]


def test_saved_profile_round_trips_through_json(tmp_path):
    path = tmp_path / "profiles.json"
    dumped = BUILTIN_PROFILES["escpos-line"].model_dump(mode="json")
    path.write_text(json.dumps({"copy": dumped}), encoding="utf-8")
    loaded = load_profiles(path)["copy"]
    assert loaded.model_dump(exclude={"name"}) == BUILTIN_PROFILES["escpos-line"].model_dump(exclude={"name"})
