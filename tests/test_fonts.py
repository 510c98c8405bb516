# SPDX-License-Identifier: Apache-2.0
"""Tests for FontResolver."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from PIL import ImageFont

from document_composer.core.fonts import FontResolver, generic_family


class TestGenericFamily:
    """Tests for generic_family."""

    def test_classification(self) -> None:
        """Test family names map to generic families."""
        assert generic_family("cursive") == "script"
        assert generic_family("Times New Roman") == "serif"
        assert generic_family("Roboto") == "sans"
        assert generic_family("Unknown Family") == "sans"


class TestFontResolver:
    """Tests for candidate ordering and loading."""

    def test_specific_before_generic(self) -> None:
        """Test the requested family's files come before generic fallbacks."""
        candidates = FontResolver(font_dirs=[]).candidates("Arial")

        assert candidates.index("arial.ttf") < candidates.index("DejaVuSans.ttf")

    def test_bold_files_first(self) -> None:
        """Test bold variants precede regular files."""
        candidates = FontResolver(font_dirs=[]).candidates("Roboto", bold=True)

        assert candidates[0] == "Roboto-Bold.ttf"
        assert candidates.index("DejaVuSans-Bold.ttf") < candidates.index("DejaVuSans.ttf")

    def test_candidates_unique_and_stable(self) -> None:
        """Test candidate lists are duplicate-free and identical across calls."""
        resolver = FontResolver(font_dirs=[])

        first = resolver.candidates("Helvetica")
        second = resolver.candidates("Helvetica")

        assert first == second
        assert len(first) == len(set(first))

    def test_falls_back_to_default(self) -> None:
        """Test Pillow's default font is used when no file exists."""
        resolver = FontResolver(font_dirs=[])

        with patch("document_composer.core.fonts.ImageFont.load_default", wraps=ImageFont.load_default) as load_default:
            font = resolver.resolve("Roboto", 18)

        load_default.assert_called_once_with(size=18)
        assert font is not None

    def test_first_existing_file_wins(self, tmp_path: Path) -> None:
        """Test the first existing candidate file is loaded."""
        (tmp_path / "LiberationSans-Regular.ttf").write_bytes(b"stub")
        (tmp_path / "DejaVuSans.ttf").write_bytes(b"stub")
        resolver = FontResolver(font_dirs=[tmp_path])
        sentinel = object()

        with patch("document_composer.core.fonts.ImageFont.truetype", return_value=sentinel) as truetype:
            font = resolver.resolve("Arial", 12)

        assert font is sentinel
        truetype.assert_called_once_with(str(tmp_path / "LiberationSans-Regular.ttf"), 12)

    def test_unloadable_file_skipped(self, tmp_path: Path) -> None:
        """Test a broken font file is skipped in favour of the next candidate."""
        (tmp_path / "DejaVuSans.ttf").write_bytes(b"not a font")
        resolver = FontResolver(font_dirs=[tmp_path])

        font = resolver.resolve("Roboto", 12)

        assert font is not None

    def test_cache_per_instance(self) -> None:
        """Test repeated lookups return the cached font."""
        resolver = FontResolver(font_dirs=[])

        assert resolver.resolve("Arial", 14) is resolver.resolve("arial", 14.2)
        assert resolver.resolve("Arial", 14) is not resolver.resolve("Arial", 14, weight=700)
