"""Tests for canonical upload naming."""
import pytest

from app.uploads.paths import (
    compose_stored_filename,
    compose_stored_path,
    sanitize_segment,
    slot_order_in_day,
    split_filename,
)


class TestSlotOrderInDay:
    def test_wraps_by_total_days(self):
        assert slot_order_in_day(7, 3) == 1

    @pytest.mark.parametrize("slot_order,expected", [(1, 1), (2, 2), (3, 3), (4, 1), (5, 2)])
    def test_three_day_conference(self, slot_order, expected):
        assert slot_order_in_day(slot_order, 3) == expected

    def test_single_day_is_always_first(self):
        assert slot_order_in_day(9, 1) == 1

    def test_rejects_zero_days(self):
        with pytest.raises(ValueError):
            slot_order_in_day(1, 0)


class TestSanitize:
    def test_spaces_and_punctuation(self):
        assert sanitize_segment("Main Hall") == "Main_Hall"
        assert sanitize_segment("My Talk!") == "My_Talk_"

    def test_path_separators_cannot_escape(self):
        assert sanitize_segment("../etc") == "___etc"

    def test_numbers(self):
        assert sanitize_segment(2) == "2"


class TestSplitFilename:
    def test_keeps_extension_case(self):
        assert split_filename("Deck.PPTX") == ("Deck", ".PPTX")

    def test_last_suffix_only(self):
        assert split_filename("v1.2 final.pptx") == ("v1.2 final", ".pptx")

    def test_no_extension(self):
        assert split_filename("README") == ("README", "")

    def test_dotfile_has_no_extension(self):
        assert split_filename(".pptx") == (".pptx", "")

    def test_client_directories_dropped(self):
        assert split_filename("C:\\Users\\ada\\talk.ppt") == ("talk", ".ppt")
        assert split_filename("../../talk.ppt") == ("talk", ".ppt")


class TestCompose:
    def test_stored_path(self):
        assert compose_stored_path("Main Hall", 2) == "uploads/Main_Hall/Day_2/"

    def test_stored_path_custom_root(self):
        assert compose_stored_path("Room B", 1, "slides") == "slides/Room_B/Day_1/"

    def test_stored_filename(self):
        assert compose_stored_filename(1, "SP004", "My Talk!.pptx") == "1_SP004_My_Talk_.pptx"
