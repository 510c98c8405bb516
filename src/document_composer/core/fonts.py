# SPDX-License-Identifier: Apache-2.0
"""Deterministic font resolution for the rasterizer.

A font family resolves by walking a fixed, ordered candidate list:
the requested family's files, then its generic family (sans, serif or
script), and finally Pillow's bundled default font. The first file that
exists and loads wins, so identical inputs on the same machine always
produce the same font.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import ImageFont

logger = logging.getLogger(__name__)

PILFont = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

DEFAULT_FONT_DIRS: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/truetype/liberation",
    "/usr/share/fonts/truetype/liberation2",
    "/usr/share/fonts/truetype/roboto/unhinted/RobotoTTF",
    "/usr/share/fonts/TTF",
    "/usr/share/fonts/dejavu",
    "/Library/Fonts",
    "/System/Library/Fonts",
    "/System/Library/Fonts/Supplemental",
    "C:/Windows/Fonts",
)

# family (lowercase) -> (regular files, bold files)
FAMILY_FILES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "arial": (
        ("arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"),
        ("arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf"),
    ),
    "helvetica": (
        ("Helvetica.ttc", "LiberationSans-Regular.ttf"),
        ("LiberationSans-Bold.ttf",),
    ),
    "roboto": (
        ("Roboto-Regular.ttf",),
        ("Roboto-Bold.ttf",),
    ),
    "times new roman": (
        ("times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf"),
        ("timesbd.ttf", "Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf"),
    ),
    "georgia": (
        ("georgia.ttf", "Georgia.ttf"),
        ("georgiab.ttf", "Georgia Bold.ttf"),
    ),
    "courier new": (
        ("cour.ttf", "Courier New.ttf", "LiberationMono-Regular.ttf"),
        ("courbd.ttf", "Courier New Bold.ttf", "LiberationMono-Bold.ttf"),
    ),
}

GENERIC_FILES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "sans": (
        ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "arial.ttf", "Arial.ttf"),
        ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "arialbd.ttf"),
    ),
    "serif": (
        ("DejaVuSerif.ttf", "LiberationSerif-Regular.ttf", "times.ttf"),
        ("DejaVuSerif-Bold.ttf", "LiberationSerif-Bold.ttf", "timesbd.ttf"),
    ),
    "script": (
        ("segoesc.ttf", "Brush Script.ttf", "DejaVuSerif-Italic.ttf", "DejaVuSans-Oblique.ttf"),
        ("segoescb.ttf", "DejaVuSerif-BoldItalic.ttf", "DejaVuSans-BoldOblique.ttf"),
    ),
}

SCRIPT_FAMILIES = frozenset({"cursive", "script", "brush script mt", "segoe script", "dancing script"})
SERIF_FAMILIES = frozenset({"serif", "times new roman", "times", "georgia", "garamond"})


def generic_family(family: str) -> str:
    """Classify a CSS family name as sans, serif or script."""
    name = family.strip().lower()
    if name in SCRIPT_FAMILIES:
        return "script"
    if name in SERIF_FAMILIES:
        return "serif"
    return "sans"


class FontResolver:
    """Resolve (family, size, weight) to a loaded Pillow font.

    Resolved fonts are cached per instance; create one resolver per
    rasterization to avoid sharing state between invocations.
    """

    def __init__(self, font_dirs: Optional[Sequence[Union[str, Path]]] = None) -> None:
        """Initialize FontResolver.

        Args:
            font_dirs: Directories searched in order. Defaults to common
                system font locations.
        """
        dirs = DEFAULT_FONT_DIRS if font_dirs is None else font_dirs
        self._font_dirs = tuple(Path(d) for d in dirs)
        self._cache: dict[tuple[str, int, bool], PILFont] = {}

    def candidates(self, family: str, bold: bool = False) -> list[str]:
        """Ordered candidate file names for a family (most specific first)."""
        names: list[str] = []
        chains = [GENERIC_FILES[generic_family(family)]]
        specific = FAMILY_FILES.get(family.strip().lower())
        if specific is not None:
            chains.insert(0, specific)
        for regular, bold_files in chains:
            if bold:
                names.extend(bold_files)
            names.extend(regular)
        seen: set[str] = set()
        ordered = []
        for name in names:
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        return ordered

    def resolve(self, family: str, size: float, weight: int = 400) -> PILFont:
        """Load the first available font for ``family`` at ``size`` pixels."""
        pixel_size = max(1, int(round(size)))
        bold = weight >= 600
        key = (family.strip().lower(), pixel_size, bold)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        font = self._load(family, pixel_size, bold)
        self._cache[key] = font
        return font

    def _load(self, family: str, pixel_size: int, bold: bool) -> PILFont:
        for name in self.candidates(family, bold):
            for directory in self._font_dirs:
                path = directory / name
                if not path.is_file():
                    continue
                try:
                    return ImageFont.truetype(str(path), pixel_size)
                except OSError:
                    logger.debug("Unloadable font file %s", path)
                    continue
        logger.debug("No font file for %r; using Pillow default", family)
        return ImageFont.load_default(size=pixel_size)
