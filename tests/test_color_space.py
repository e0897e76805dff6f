import logging
import math

import pytest

from studio.design.color_space import (
    COMPACT_PRECISION,
    ColorParseError,
    format_oklch,
    hex_to_oklch,
    hex_to_rgb,
    invert_lightness,
    is_in_srgb_gamut,
    oklch_to_hex,
    parse_oklch,
    rgb_to_hex,
    to_hex,
)

REPRESENTATIVE = [
    "#000000",
    "#FFFFFF",
    "#808080",
    "#FF0000",
    "#00FF00",
    "#0000FF",
    "#FFFF00",
    "#00FFFF",
    "#FF00FF",
    "#3B82F6",
    "#123456",
    "#ABCDEF",
    "#F97316",
    "#0F172A",
    "#010101",
    "#FEFEFE",
]


def _channels(value):
    return hex_to_rgb(value)


@pytest.mark.parametrize("hex_value", REPRESENTATIVE)
def test_round_trip_within_one_step(hex_value):
    back = oklch_to_hex(hex_to_oklch(hex_value))
    for a, b in zip(_channels(hex_value), _channels(back)):
        assert abs(a - b) <= 1, (hex_value, back)


def test_gray_has_zero_hue_and_chroma():
    color = parse_oklch(hex_to_oklch("#808080"))
    assert color.c == 0
    assert color.h == 0
    assert not math.isnan(color.h)
    assert color.l == pytest.approx(0.5999, abs=1e-3)


def test_white_and_black_are_exact():
    assert hex_to_oklch("#FFFFFF") == "oklch(1 0 0)"
    assert hex_to_oklch("#000000") == "oklch(0 0 0)"


def test_red_matches_reference_values():
    color = parse_oklch(hex_to_oklch("#ff0000"))
    assert color.l == pytest.approx(0.62796, abs=1e-3)
    assert color.c == pytest.approx(0.25768, abs=1e-3)
    assert color.h == pytest.approx(29.234, abs=0.05)


def test_compact_precision_rounds_to_two_three_zero():
    parsed = parse_oklch(hex_to_oklch("#FF0000"))
    assert format_oklch(parsed, COMPACT_PRECISION) == "oklch(0.63 0.258 29)"
    assert hex_to_oklch("#FF0000", COMPACT_PRECISION) == "oklch(0.63 0.258 29)"


def test_hex_parsing_accepts_short_and_unprefixed_forms():
    assert hex_to_rgb("#abc") == (0xAA, 0xBB, 0xCC)
    assert hex_to_rgb("3b82f6") == (0x3B, 0x82, 0xF6)
    assert hex_to_oklch("#abc") == hex_to_oklch("#AABBCC")


def test_output_hex_is_uppercase_and_clamped():
    assert rgb_to_hex((300, -4, 171)) == "#FF00AB"
    assert oklch_to_hex(hex_to_oklch("#abcdef")) == oklch_to_hex(hex_to_oklch("#ABCDEF"))
    out = oklch_to_hex("oklch(0.7 0.05 200)")
    assert out == out.upper()


def test_out_of_gamut_is_clamped_not_rejected():
    value = "oklch(0.7 0.4 150)"
    assert not is_in_srgb_gamut(value)
    out = oklch_to_hex(value)
    assert len(out) == 7 and out.startswith("#")
    assert oklch_to_hex("oklch(1.5 0 0)") == "#FFFFFF"


def test_in_gamut_detection():
    assert is_in_srgb_gamut("oklch(0.5 0 0)")


def test_malformed_input_falls_back_and_warns(caplog):
    caplog.set_level(logging.WARNING, logger="studio.design.color_space")
    assert hex_to_oklch("not-a-color") == "oklch(0.5 0 0)"
    assert hex_to_oklch("#12345") == "oklch(0.5 0 0)"
    assert oklch_to_hex("rgb(1, 2, 3)") == "#808080"
    assert oklch_to_hex("") == "#808080"
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 4
    assert "fallback" in warnings[0].getMessage()


def test_parse_oklch_variants():
    assert parse_oklch("oklch(62.8% 0.25 29deg)").l == pytest.approx(0.628)
    assert parse_oklch("oklch(0.5 0.1 -30)").h == pytest.approx(330)
    assert parse_oklch("OKLCH( 0.5 0.1 30 / 0.5 )").c == pytest.approx(0.1)
    with pytest.raises(ColorParseError):
        parse_oklch("oklch(0.5 0.1)")
    with pytest.raises(ColorParseError):
        parse_oklch("oklch(nan 0 0)")


def test_to_hex_accepts_either_notation():
    assert to_hex("#abc") == "#AABBCC"
    assert to_hex("oklch(1 0 0)") == "#FFFFFF"


def test_invert_lightness_keeps_chroma_and_hue_text():
    assert invert_lightness("oklch(0.90 0.01 250)") == "oklch(0.10 0.01 250)"
    assert invert_lightness("oklch(0.25 0.123 29.5)") == "oklch(0.75 0.123 29.5)"


def test_invert_lightness_offset_and_clamp():
    assert invert_lightness("oklch(0.90 0.01 250)", offset=0.05) == "oklch(0.15 0.01 250)"
    assert invert_lightness("oklch(0 0 0)", offset=0.5) == "oklch(1.00 0 0)"
    assert invert_lightness("oklch(1 0 0)", offset=-0.5) == "oklch(0.00 0 0)"


def test_invert_lightness_passes_through_unmatched():
    assert invert_lightness("#ff0000") == "#ff0000"
    assert invert_lightness("var(--primary)") == "var(--primary)"
    assert invert_lightness("oklch(0.5 0.1 30 / 0.5)") == "oklch(0.5 0.1 30 / 0.5)"
    assert invert_lightness("") == ""
