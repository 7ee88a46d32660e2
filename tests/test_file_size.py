"""Test file size parsing and formatting."""

import pytest

from vrstore.utils.file_size import find_file_size, format_file_size, parse_file_size


class TestParseFileSize:
    """Test size strings -> bytes."""

    @pytest.mark.parametrize("text, expected", [
        ("150 MB", 157286400),
        ("1.5 MB", 1572864),
        ("1.50 MB", 1572864),
        ("2 GB", 2147483648),
        ("512 KB", 524288),
        ("900 B", 900),
        ("1,024 KB", 1048576),
        ("150MB", 157286400),
        ("1.2 gb", 1288490189),
    ])
    def test_valid_sizes(self, text, expected):
        """Test that well-formed size strings parse to bytes."""
        assert parse_file_size(text) == expected

    @pytest.mark.parametrize("text", [None, "", "big", "150 TB", "MB 150", "about 150 MB"])
    def test_invalid_sizes_return_none(self, text):
        """Test that anything other than <number> <unit> is rejected."""
        assert parse_file_size(text) is None

    def test_find_size_in_free_text(self):
        """Test that a size token is found inside a sentence."""
        assert find_file_size("Requires 2 GB available space") == 2147483648
        assert find_file_size("no size here") is None


class TestFormatFileSize:
    """Test bytes -> display strings."""

    @pytest.mark.parametrize("size, expected", [
        (0, "0 B"),
        (None, "0 B"),
        (-5, "0 B"),
        (900, "900 B"),
        (1024, "1 KB"),
        (1572864, "1.5 MB"),
        (157286400, "150 MB"),
        (1073741824, "1 GB"),
        (5 * 1024 ** 4, "5120 GB"),
        (1048575, "1 MB"),
        (1073741823, "1 GB"),
        (1023999, "1000 KB"),
    ])
    def test_format(self, size, expected):
        """Test unit choice and rounding."""
        assert format_file_size(size) == expected

    @pytest.mark.parametrize("text", ["1.5 MB", "150 MB", "2 GB", "1 KB", "900 B", "1.25 GB"])
    def test_round_trip_for_canonical_strings(self, text):
        """Test that formatting a parsed canonical size gives the same string back."""
        assert format_file_size(parse_file_size(text)) == text
