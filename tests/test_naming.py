"""Tests for filename heuristics."""

import pytest

from bangumilink.models import LocalFileInfo
from bangumilink.naming import (
    base_name_without_episode,
    cleaned_base_name,
    extract_episode_number,
    format_episode_key,
    has_extension,
    match_subtitle_to_video,
    natural_sort_key,
    similarity_score,
    subtitle_suffix,
)


class TestExtractEpisodeNumber:
    """Tests for extract_episode_number function."""

    def test_quality_tags_are_not_episodes(self):
        """Resolution and codec numerals must never win."""
        name = "[Group] Show - 05 (1080p)[x264][AAC]"
        assert extract_episode_number(name) == 5.0

    def test_season_episode_marker(self):
        assert extract_episode_number("Show S02E03 1080p") == 3.0

    def test_chinese_ordinal(self):
        assert extract_episode_number("某番剧 第12话") == 12.0
        assert extract_episode_number("某番剧 第3集") == 3.0

    def test_ep_marker(self):
        assert extract_episode_number("Show EP07 [WebRip]") == 7.0

    def test_special_token(self):
        assert extract_episode_number("Show SP01") == 1.0

    def test_plain_number(self):
        assert extract_episode_number("Show - 01") == 1.0

    def test_zero_is_ignored(self):
        assert extract_episode_number("Show - 00") is None

    def test_too_large_is_ignored(self):
        assert extract_episode_number("Show - 2019") is None

    @pytest.mark.parametrize("name", ["", "Show", "Show 1080p", "Show [1920x1080]"])
    def test_no_episode(self, name):
        assert extract_episode_number(name) is None


class TestFormatEpisodeKey:
    """Tests for format_episode_key function."""

    def test_two_digits(self):
        assert format_episode_key(7, 24, "E") == "E07"

    def test_three_digits(self):
        assert format_episode_key(7, 240, "E") == "E007"

    def test_fractional_sort(self):
        assert format_episode_key(2.5, 24, "E") == "E02.5"

    def test_fraction_rounding_up(self):
        assert format_episode_key(2.9999996, 24) == "E03"
        assert format_episode_key(2.0000004, 24) == "E02"

    def test_fraction_digits_are_trimmed(self):
        assert format_episode_key(1.25, 24) == "E01.25"

    def test_small_season_keeps_two_digits(self):
        assert format_episode_key(1, 2) == "E01"
        assert format_episode_key(3, 5) == "E03"

    def test_five_digits(self):
        assert format_episode_key(1, 10000) == "E00001"

    def test_special_prefix(self):
        assert format_episode_key(2, 12, "SP") == "SP02"


class TestBaseNames:
    """Tests for cleaned_base_name and base_name_without_episode."""

    def test_release_tag_removed(self):
        assert cleaned_base_name("Show.01-GROUP") == "Show.01"

    def test_quality_removed_and_separators_collapsed(self):
        assert cleaned_base_name("Show 01 1080p") == "Show.01"

    def test_different_groups_share_identity(self):
        video = base_name_without_episode("[SubA] Show - 01 [1080p]")
        sub = base_name_without_episode("[SubB] Show - 01")
        assert video == sub == "Show"

    def test_episode_markers_removed(self):
        assert base_name_without_episode("Show S01E02") == "Show"


class TestNaturalSort:
    """Tests for natural_sort_key."""

    def _file(self, name: str, ext: str = ".mkv") -> LocalFileInfo:
        return LocalFileInfo(rel_path=name + ext, name_only=name, ext=ext, full_path=name + ext)

    def test_numbers_compare_numerically(self):
        files = [self._file("ep10"), self._file("ep2"), self._file("ep1")]
        assert [f.name_only for f in sorted(files, key=natural_sort_key)] == [
            "ep1",
            "ep2",
            "ep10",
        ]

    def test_extension_breaks_ties(self):
        files = [self._file("ep1", ".srt"), self._file("ep1", ".ass")]
        assert [f.ext for f in sorted(files, key=natural_sort_key)] == [".ass", ".srt"]


class TestSubtitleSuffix:
    """Tests for subtitle_suffix function."""

    def test_compound_suffix_kept(self):
        assert subtitle_suffix("Show - 01.scjp.ass", "Show - 01") == ".scjp.ass"

    def test_unrelated_name_keeps_last_extension(self):
        assert subtitle_suffix("Other.chs.ass", "Show - 01") == ".ass"

    def test_no_extension(self):
        assert subtitle_suffix("Other", "Show") == ""


class TestSimilarity:
    """Tests for similarity helpers."""

    def test_identical(self):
        assert similarity_score("abc", "ABC") == 1.0

    def test_empty(self):
        assert similarity_score("", "abc") == 0.0

    def test_subtitle_matches_video(self):
        assert match_subtitle_to_video("[Group] Show - 01", "[Group] Show - 01 sc")

    def test_unrelated_names(self):
        assert not match_subtitle_to_video("abc", "xyz")


class TestHasExtension:
    """Tests for has_extension function."""

    def test_compound_extension(self):
        assert has_extension(".SCJP.ASS", [".ass"])

    def test_other_extension(self):
        assert not has_extension(".mkv", [".ass", ".srt"])
