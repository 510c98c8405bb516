# SPDX-License-Identifier: Apache-2.0
"""Layout tree rasterization.

Renders an immutable layout tree onto a white A4 canvas with Pillow. The
canvas is a scoped :class:`RenderSurface`: it is released exactly once on
both the success and the error path.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from PIL import Image, ImageDraw

from document_composer.core.errors import RenderError, ResourceError
from document_composer.core.fonts import FontResolver, PILFont
from document_composer.core.helpers import parse_color
from document_composer.core.models import (
    Alignment,
    BBox,
    ImageInstruction,
    ImageRef,
    LayoutElement,
    PixelBuffer,
    PlaceholderInstruction,
    QualityTier,
    RuleInstruction,
    TextInstruction,
    TextRun,
    canvas_size,
)

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255)

PLACEHOLDER_FILL = (241, 243, 245)
PLACEHOLDER_BORDER = (222, 226, 230)
PLACEHOLDER_TITLE = (73, 80, 87)
PLACEHOLDER_NAME = (108, 117, 125)
PLACEHOLDER_SIZE = (173, 181, 189)
PLACEHOLDER_FAMILY = "Arial"


@dataclass
class ResolvedImages:
    """Decoded images keyed by :attr:`ImageRef.key`.

    Failed references are absent from ``images`` and listed in ``errors``.
    """

    images: dict[str, Image.Image] = field(default_factory=dict)
    errors: list[RenderError] = field(default_factory=list)

    def close(self) -> None:
        for image in self.images.values():
            image.close()
        self.images.clear()


def iter_image_refs(layout: Iterable[LayoutElement]) -> list[ImageRef]:
    """All image references in layout order, first occurrence per key."""
    refs: list[ImageRef] = []
    seen: set[str] = set()
    for element in layout:
        for ref in element.images():
            if ref.key not in seen:
                seen.add(ref.key)
                refs.append(ref)
    return refs


def decode_image(ref: ImageRef) -> Image.Image:
    """Fully decode an image reference into an RGBA image.

    Raises:
        RenderError: If the bytes cannot be decoded.
    """
    try:
        with Image.open(io.BytesIO(ref.data)) as img:
            img.load()
            return img.convert("RGBA")
    except Exception as exc:
        raise RenderError(
            f"Failed to decode image '{ref.key}'", cause=exc, image_key=ref.key
        ) from exc


class RenderSurface:
    """Off-screen composition target.

    Use as a context manager. Release failures are logged as
    :class:`ResourceError` and never propagate.
    """

    def __init__(self, width: int, height: int) -> None:
        self.image = Image.new("RGB", (width, height), BACKGROUND)
        self.draw = ImageDraw.Draw(self.image)
        self._released = False
        self.release_error: Optional[ResourceError] = None

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Release the canvas; subsequent calls are no-ops."""
        if self._released:
            return
        self._released = True
        try:
            self.image.close()
        except Exception as exc:
            self.release_error = ResourceError("Failed to release render surface", cause=exc)
            logger.warning("%s", self.release_error)

    def __enter__(self) -> RenderSurface:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class Rasterizer:
    """Render layout trees into pixel buffers."""

    def __init__(
        self,
        font_resolver_factory: Callable[[], FontResolver] = FontResolver,
    ) -> None:
        """Initialize Rasterizer.

        Args:
            font_resolver_factory: Creates a fresh resolver per render call.
        """
        self._font_resolver_factory = font_resolver_factory

    def rasterize(self, layout: list[LayoutElement], tier: QualityTier) -> PixelBuffer:
        """Resolve all images, then render the layout at the tier's scale."""
        resolved = self.resolve_images(layout)
        try:
            return self.render(layout, tier, resolved)
        finally:
            resolved.close()

    def resolve_images(self, layout: list[LayoutElement]) -> ResolvedImages:
        """Decode every embedded image; failures are collected, not raised."""
        resolved = ResolvedImages()
        for ref in iter_image_refs(layout):
            self._collect(resolved, ref, self._try_decode(ref))
        return resolved

    async def resolve_images_async(self, layout: list[LayoutElement]) -> ResolvedImages:
        """Decode every embedded image concurrently and wait for all of them."""
        refs = iter_image_refs(layout)
        results = await asyncio.gather(
            *(asyncio.to_thread(self._try_decode, ref) for ref in refs)
        )
        resolved = ResolvedImages()
        for ref, result in zip(refs, results):
            self._collect(resolved, ref, result)
        return resolved

    @staticmethod
    def _try_decode(ref: ImageRef) -> Image.Image | RenderError:
        try:
            return decode_image(ref)
        except RenderError as exc:
            return exc

    @staticmethod
    def _collect(
        resolved: ResolvedImages, ref: ImageRef, result: Image.Image | RenderError
    ) -> None:
        if isinstance(result, RenderError):
            logger.warning("Omitting image: %s", result)
            resolved.errors.append(result)
        else:
            resolved.images[ref.key] = result

    def render(
        self,
        layout: list[LayoutElement],
        tier: QualityTier,
        resolved: ResolvedImages,
    ) -> PixelBuffer:
        """Render the layout onto a fresh canvas.

        Args:
            layout: Layout tree from the composer.
            tier: Quality tier selecting the scale factor.
            resolved: Images decoded by :meth:`resolve_images`.

        Returns:
            PixelBuffer of size ``canvas_size(tier.scale)``.
        """
        scale = tier.scale
        width, height = canvas_size(scale)
        fonts = self._font_resolver_factory()

        with RenderSurface(width, height) as surface:
            for element in layout:
                for instruction in element.instructions:
                    if isinstance(instruction, TextInstruction):
                        self._draw_text(surface, fonts, instruction.run, instruction.bbox.scaled(scale))
                    elif isinstance(instruction, ImageInstruction):
                        image = resolved.images.get(instruction.image.key)
                        if image is not None:
                            self._draw_image(surface, image, instruction.bbox.scaled(scale), scale)
                    elif isinstance(instruction, RuleInstruction):
                        self._draw_rule(surface, instruction, scale)
                    elif isinstance(instruction, PlaceholderInstruction):
                        self._draw_placeholder(surface, fonts, instruction, scale)
            buffer = PixelBuffer.from_image(
                surface.image, scale, render_errors=tuple(resolved.errors)
            )
        if surface.release_error is not None:
            buffer = replace(
                buffer, render_errors=buffer.render_errors + (surface.release_error,)
            )

        logger.info(
            "Rasterized %d blocks at %.1fx (%dx%d, %d images omitted)",
            len(layout),
            scale,
            width,
            height,
            len(resolved.errors),
        )
        return buffer

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    @staticmethod
    def _draw_text(
        surface: RenderSurface,
        fonts: FontResolver,
        run: TextRun,
        bbox: BBox,
    ) -> None:
        if not run.text:
            return
        pixel_size = bbox.height / run.line_height
        font = fonts.resolve(run.font_family, pixel_size, run.weight)
        _draw_aligned(surface.draw, run.text, font, parse_color(run.color), run.alignment, bbox, pixel_size)

    @staticmethod
    def _draw_image(surface: RenderSurface, image: Image.Image, bbox: BBox, scale: float) -> None:
        if image.width <= 0 or image.height <= 0:
            return
        # Contain-fit, never larger than the intrinsic size at this scale
        ratio = min(bbox.width / image.width, bbox.height / image.height, scale)
        target = (max(1, int(round(image.width * ratio))), max(1, int(round(image.height * ratio))))
        fitted = image.resize(target, Image.Resampling.LANCZOS)
        left = int(round(bbox.x + (bbox.width - target[0]) / 2))
        top = int(round(bbox.y + (bbox.height - target[1]) / 2))
        surface.image.paste(fitted, (left, top), fitted)
        fitted.close()

    @staticmethod
    def _draw_rule(surface: RenderSurface, rule: RuleInstruction, scale: float) -> None:
        box = rule.bbox.scaled(scale)
        surface.draw.rectangle(
            [box.x, box.y, box.right, max(box.y, box.bottom - 1)],
            fill=parse_color(rule.color),
        )

    def _draw_placeholder(
        self,
        surface: RenderSurface,
        fonts: FontResolver,
        placeholder: PlaceholderInstruction,
        scale: float,
    ) -> None:
        box = placeholder.bbox.scaled(scale)
        draw = surface.draw
        accent = parse_color(placeholder.accent)
        draw.rounded_rectangle(
            [box.x, box.y, box.right, box.bottom],
            radius=12 * scale,
            fill=PLACEHOLDER_FILL,
            outline=PLACEHOLDER_BORDER,
            width=max(1, int(scale)),
        )

        # Page glyph with a folded corner
        glyph_w, glyph_h = 48 * scale, 60 * scale
        gx = box.x + (box.width - glyph_w) / 2
        gy = box.y + 30 * scale
        fold = 14 * scale
        draw.polygon(
            [
                (gx, gy),
                (gx + glyph_w - fold, gy),
                (gx + glyph_w, gy + fold),
                (gx + glyph_w, gy + glyph_h),
                (gx, gy + glyph_h),
            ],
            fill=accent,
        )
        draw.polygon(
            [(gx + glyph_w - fold, gy), (gx + glyph_w - fold, gy + fold), (gx + glyph_w, gy + fold)],
            fill=_tint(accent, 0.5),
        )

        y = gy + glyph_h + 20 * scale
        lines = (
            (placeholder.title, 24, 600, PLACEHOLDER_TITLE, 10),
            (placeholder.file_name, 16, 400, PLACEHOLDER_NAME, 8),
            (placeholder.size_label, 14, 400, PLACEHOLDER_SIZE, 20),
        )
        for text, size, weight, color, gap in lines:
            line_box = BBox(box.x, y, box.width, size * 1.2 * scale)
            font = fonts.resolve(PLACEHOLDER_FAMILY, size * scale, weight)
            _draw_aligned(draw, text, font, color, Alignment.CENTER, line_box, size * scale)
            y = line_box.bottom + gap * scale

        note_box = BBox(box.x + 20 * scale, y, box.width - 40 * scale, 36 * scale)
        draw.rounded_rectangle(
            [note_box.x, note_box.y, note_box.right, note_box.bottom],
            radius=8 * scale,
            fill=_tint(accent, 0.1),
        )
        font = fonts.resolve(PLACEHOLDER_FAMILY, 12 * scale)
        _draw_aligned(draw, placeholder.note, font, _shade(accent, 0.6), Alignment.CENTER, note_box, 12 * scale)


def _draw_aligned(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: PILFont,
    fill: tuple[int, int, int],
    alignment: Alignment,
    bbox: BBox,
    pixel_size: float,
) -> None:
    """Draw one line aligned horizontally and centered vertically in ``bbox``."""
    text_width = draw.textlength(text, font=font)
    if alignment is Alignment.CENTER:
        x = bbox.x + (bbox.width - text_width) / 2
    elif alignment is Alignment.RIGHT:
        x = bbox.right - text_width
    else:
        x = bbox.x
    y = bbox.y + (bbox.height - pixel_size) / 2
    draw.text((x, y), text, font=font, fill=fill)


def _tint(color: tuple[int, int, int], amount: float) -> tuple[int, int, int]:
    """Blend ``color`` over white at ``amount`` opacity."""
    r, g, b = color
    return (
        int(round(255 + (r - 255) * amount)),
        int(round(255 + (g - 255) * amount)),
        int(round(255 + (b - 255) * amount)),
    )


def _shade(color: tuple[int, int, int], factor: float) -> tuple[int, int, int]:
    r, g, b = color
    return int(r * factor), int(g * factor), int(b * factor)
