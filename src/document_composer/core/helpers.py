# SPDX-License-Identifier: Apache-2.0
"""Small conversion helpers shared by the composer and rasterizer."""

from __future__ import annotations

import math

from PIL import ImageColor

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """Format a byte count for display (1024-based).

    Args:
        size: Size in bytes

    Returns:
        Human readable size such as ``"0 Bytes"``, ``"512 Bytes"`` or ``"1.5 KB"``.

    Example:
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if size <= 0:
        return "0 Bytes"
    k = 1024
    i = min(int(math.floor(math.log(size) / math.log(k))), len(_SIZE_UNITS) - 1)
    value = round(size / k**i, 2)
    # Drop trailing zeros: 2.0 -> "2", 1.50 -> "1.5"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"


def parse_color(value: str, default: tuple[int, int, int] = (0, 0, 0)) -> tuple[int, int, int]:
    """Convert a CSS color string to an RGB tuple.

    Unknown colors fall back to ``default`` instead of raising, since colors
    come straight from user input.
    """
    try:
        rgb = ImageColor.getrgb(value.strip())
    except (ValueError, AttributeError):
        return default
    return rgb[0], rgb[1], rgb[2]


def estimate_text_width(text: str, font_size: float) -> float:
    """Estimate rendered text width without loading a font."""
    return len(text) * font_size * 0.55
