"""Tests for table parsing and the keyboard layout."""

from acmapper import (
    KEYBOARD_LAYOUT,
    default_table,
    is_bass_key,
    is_layout_key,
    layout_position,
    parse_basses,
    parse_modes,
    parse_scales,
)
from acmapper.tables import build_key_table, display_name, parse_ints


class TestLayout:
    def test_positions(self):
        assert len(KEYBOARD_LAYOUT) == 30
        assert layout_position("q") == 0
        assert layout_position("a") == 10
        assert layout_position(";") == 19
        assert layout_position("z") == 20
        assert layout_position("/") == 29
        assert layout_position("1") is None

    def test_key_sets(self):
        assert is_layout_key(",")
        assert not is_layout_key("[")
        assert is_bass_key("[")
        assert is_bass_key("7")
        assert not is_bass_key("/")
        assert not is_bass_key("1")


class TestParsing:
    def test_parse_ints_stops_at_first_bad_token(self):
        assert parse_ints(["0", "2", "-4", "five", "7"]) == [0, 2, -4]
        assert parse_ints([]) == []

    def test_parse_ints_takes_leading_digits(self):
        assert parse_ints(["5x", "7"]) == [5]
        assert parse_ints(["0", "+3", "1_0", "4"]) == [0, 3, 1]
        assert parse_ints(["x5"]) == []

    def test_scale_names_and_offsets(self):
        scales = parse_scales(["Harmonic_Minor 0 2 3 5 7 8 11", "", "Major 0 2 4 five 7"])
        assert [s.name for s in scales] == ["Harmonic Minor", "Major"]
        assert scales[1].offsets == (0, 2, 4)
        assert len(scales[0]) == 7

    def test_modes_keep_short_records(self):
        modes = parse_modes(["Percussion_Mode 1 2 3"])
        assert modes[0].name == "Percussion Mode"
        assert modes[0].slots == (1, 2, 3)

    def test_basses_keyed_by_first_char(self):
        presets = parse_basses(["s 0 4 7", "; -5", "x", "s 0 3 7"])
        assert presets["s"] == (0, 3, 7)
        assert presets[";"] == (-5,)
        assert presets["x"] == ()

    def test_key_tables(self):
        melodic = build_key_table(60)
        assert melodic["C"] == 60
        assert melodic["B"] == 71
        assert build_key_table(48)["Eb"] == 51
        assert len(melodic) == 12

    def test_display_name(self):
        assert display_name("Whole_Tone") == "Whole Tone"


class TestBundledTables:
    def test_default_tables_parse(self):
        scales = parse_scales(default_table("scales.txt"))
        modes = parse_modes(default_table("modes.txt"))
        presets = parse_basses(default_table("basses.txt"))

        assert scales[0].name == "Major"
        assert scales[0].offsets == (0, 2, 4, 5, 7, 9, 11)
        assert all(len(m.slots) == 30 for m in modes)
        assert all(0 <= slot < 30 for m in modes for slot in m.slots)
        assert all(is_bass_key(char) for char in presets)
