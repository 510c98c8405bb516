# SPDX-License-Identifier: Apache-2.0
"""Pixel buffer encoding to PDF, PNG or JPG."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from document_composer.core.errors import EncodingError
from document_composer.core.models import (
    A4_HEIGHT_MM,
    A4_WIDTH_MM,
    OutputFormat,
    PixelBuffer,
    QualityTier,
)

logger = logging.getLogger(__name__)

# Canvases within this much of the A4 aspect ratio are treated as exact A4.
# 794x1123 px maps to 297.015mm at full width.
PAGE_FIT_TOLERANCE_MM = 0.05


@dataclass(frozen=True)
class PagePlacement:
    """Image placement on an A4 page, in millimetres from the top-left corner."""

    x_mm: float
    y_mm: float
    width_mm: float
    height_mm: float


def compute_page_fit(width_px: int, height_px: int) -> PagePlacement:
    """Fit a raster onto an A4 page.

    The image spans the full page width. If that makes it taller than the
    page, both dimensions shrink by ``297 / height`` and the narrower image
    is centered horizontally.

    Args:
        width_px: Canvas width in pixels.
        height_px: Canvas height in pixels.

    Returns:
        PagePlacement in millimetres.
    """
    if width_px <= 0 or height_px <= 0:
        raise ValueError(f"Invalid canvas size {width_px}x{height_px}")

    img_width = A4_WIDTH_MM
    img_height = height_px * A4_WIDTH_MM / width_px
    if img_height > A4_HEIGHT_MM + PAGE_FIT_TOLERANCE_MM:
        factor = A4_HEIGHT_MM / img_height
        scaled_width = img_width * factor
        return PagePlacement(
            x_mm=(A4_WIDTH_MM - scaled_width) / 2,
            y_mm=0.0,
            width_mm=scaled_width,
            height_mm=A4_HEIGHT_MM,
        )
    return PagePlacement(
        x_mm=0.0, y_mm=0.0, width_mm=img_width, height_mm=min(img_height, A4_HEIGHT_MM)
    )


def jpeg_quality(tier: QualityTier) -> int:
    """Pillow JPEG quality (1-100) for a tier."""
    return int(round(tier.jpeg_quality * 100))


class Encoder:
    """Serialize pixel buffers. Stateless; nothing is cached between calls."""

    def encode(
        self,
        buffer: PixelBuffer,
        output_format: OutputFormat,
        tier: QualityTier,
    ) -> bytes:
        """Encode a pixel buffer.

        Args:
            buffer: Rasterized page.
            output_format: pdf, png or jpg.
            tier: Quality tier (affects jpg compression only).

        Returns:
            Encoded bytes.

        Raises:
            EncodingError: If serialization fails.
        """
        try:
            image = buffer.to_image()
        except Exception as exc:
            raise EncodingError("Invalid pixel buffer", cause=exc) from exc

        try:
            if output_format is OutputFormat.PDF:
                data = self._encode_pdf(image)
            elif output_format is OutputFormat.PNG:
                data = self._encode_raster(image, "PNG")
            elif output_format is OutputFormat.JPG:
                data = self._encode_raster(image, "JPEG", quality=jpeg_quality(tier))
            else:
                raise ValueError(f"Unsupported output format: {output_format!r}")
        except EncodingError:
            raise
        except Exception as exc:
            raise EncodingError(
                f"Failed to encode {getattr(output_format, 'value', output_format)}",
                cause=exc,
            ) from exc
        finally:
            image.close()

        logger.info(
            "Encoded %dx%d buffer as %s (%d bytes)",
            buffer.width,
            buffer.height,
            output_format.value,
            len(data),
        )
        return data

    @staticmethod
    def _encode_raster(image: Image.Image, pil_format: str, **options: int) -> bytes:
        out = io.BytesIO()
        if pil_format == "JPEG":
            image = image.convert("RGB")
            image.save(out, format=pil_format, **options)
        else:
            # PNG is lossless; the tier is ignored.
            image.save(out, format=pil_format, optimize=False)
        return out.getvalue()

    @staticmethod
    def _encode_pdf(image: Image.Image) -> bytes:
        placement = compute_page_fit(image.width, image.height)
        page_width, page_height = A4

        out = io.BytesIO()
        pdf = canvas.Canvas(out, pagesize=A4, pageCompression=1)
        pdf.setCreator("document-composer")
        # reportlab's origin is bottom-left; anchor the image to the page top.
        pdf.drawImage(
            ImageReader(image),
            placement.x_mm * mm,
            page_height - (placement.y_mm + placement.height_mm) * mm,
            width=placement.width_mm * mm,
            height=placement.height_mm * mm,
        )
        pdf.showPage()
        pdf.save()
        logger.debug(
            "PDF placement x=%.2fmm y=%.2fmm w=%.2fmm h=%.2fmm (page %.1fx%.1fpt)",
            placement.x_mm,
            placement.y_mm,
            placement.width_mm,
            placement.height_mm,
            page_width,
            page_height,
        )
        return out.getvalue()


def encode(buffer: PixelBuffer, output_format: OutputFormat, tier: QualityTier) -> bytes:
    """Encode with a default :class:`Encoder`."""
    return Encoder().encode(buffer, output_format, tier)
