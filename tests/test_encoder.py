# SPDX-License-Identifier: Apache-2.0
"""Tests for Encoder and page-fit logic."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from PIL import Image

from document_composer.core.encoder import Encoder, compute_page_fit, encode, jpeg_quality
from document_composer.core.errors import EncodingError
from document_composer.core.models import OutputFormat, PixelBuffer, QualityTier


def _buffer(width: int = 79, height: int = 112, color: tuple[int, int, int] = (10, 120, 200)) -> PixelBuffer:
    image = Image.new("RGB", (width, height), color)
    return PixelBuffer.from_image(image, scale=1.0)


class TestComputePageFit:
    """Tests for compute_page_fit."""

    def test_tall_canvas_scaled_and_centered(self) -> None:
        """Test a canvas taller than A4 is scaled to 297mm and centered."""
        placement = compute_page_fit(794, 2000)

        img_height = 2000 * 210 / 794
        factor = 297 / img_height
        assert placement.height_mm == pytest.approx(297)
        assert placement.width_mm == pytest.approx(210 * factor)
        assert placement.x_mm == pytest.approx((210 - 210 * factor) / 2)
        assert placement.x_mm > 0
        assert placement.y_mm == 0

    def test_a4_canvas_full_width(self) -> None:
        """Test an A4-ratio canvas is placed full width at the origin."""
        placement = compute_page_fit(794, 1123)

        assert placement.x_mm == 0
        assert placement.y_mm == 0
        assert placement.width_mm == 210
        assert placement.height_mm == pytest.approx(297, abs=0.05)
        assert placement.height_mm <= 297

    def test_short_canvas_keeps_ratio(self) -> None:
        """Test a canvas shorter than A4 keeps its aspect ratio at the top."""
        placement = compute_page_fit(794, 500)

        assert placement.x_mm == 0
        assert placement.width_mm == 210
        assert placement.height_mm == pytest.approx(500 * 210 / 794)

    def test_scaled_canvas_same_placement(self) -> None:
        """Test placement depends only on aspect ratio."""
        assert compute_page_fit(1588, 2246) == compute_page_fit(794, 1123)

    def test_invalid_size(self) -> None:
        """Test degenerate sizes are rejected."""
        with pytest.raises(ValueError):
            compute_page_fit(0, 100)


class TestJpegQuality:
    """Tests for tier compression factors."""

    @pytest.mark.parametrize(
        ("tier", "factor", "quality"),
        [
            (QualityTier.LOW, 0.6, 60),
            (QualityTier.MEDIUM, 0.8, 80),
            (QualityTier.HIGH, 0.95, 95),
        ],
    )
    def test_factors(self, tier: QualityTier, factor: float, quality: int) -> None:
        """Test compression factor and Pillow quality per tier."""
        assert tier.jpeg_quality == factor
        assert jpeg_quality(tier) == quality


class TestEncoder:
    """Tests for Encoder.encode."""

    def test_png_lossless(self) -> None:
        """Test PNG output round-trips pixels exactly for every tier."""
        buffer = _buffer()

        for tier in QualityTier:
            data = Encoder().encode(buffer, OutputFormat.PNG, tier)
            assert data[:8] == b"\x89PNG\r\n\x1a\n"
            with Image.open(io.BytesIO(data)) as img:
                assert img.convert("RGB").tobytes() == buffer.data

    def test_png_ignores_tier(self) -> None:
        """Test PNG bytes are identical across tiers."""
        buffer = _buffer()

        outputs = {encode(buffer, OutputFormat.PNG, tier) for tier in QualityTier}

        assert len(outputs) == 1

    def test_jpg_quality_passed(self) -> None:
        """Test the tier's JPEG quality reaches Pillow."""
        buffer = _buffer()
        saved: dict[str, object] = {}
        original_save = Image.Image.save

        def spy(self: Image.Image, fp: object, format: str | None = None, **params: object) -> None:
            saved.update(params, format=format)
            original_save(self, fp, format=format, **params)

        with patch.object(Image.Image, "save", spy):
            data = Encoder().encode(buffer, OutputFormat.JPG, QualityTier.HIGH)

        assert data[:2] == b"\xff\xd8"
        assert saved["format"] == "JPEG"
        assert saved["quality"] == 95

    def test_jpg_smaller_at_low_tier(self) -> None:
        """Test lower tiers compress harder."""
        image = Image.effect_noise((200, 200), 64).convert("RGB")
        buffer = PixelBuffer.from_image(image, scale=1.0)

        low = encode(buffer, OutputFormat.JPG, QualityTier.LOW)
        high = encode(buffer, OutputFormat.JPG, QualityTier.HIGH)

        assert len(low) < len(high)

    def test_pdf_single_a4_page(self) -> None:
        """Test PDF output is a single A4 page."""
        import pypdfium2 as pdfium

        data = Encoder().encode(_buffer(794, 1123), OutputFormat.PDF, QualityTier.LOW)

        assert data.startswith(b"%PDF")
        pdf = pdfium.PdfDocument(data)
        try:
            assert len(pdf) == 1
            width, height = pdf[0].get_size()
            assert width == pytest.approx(595.27, abs=0.1)
            assert height == pytest.approx(841.89, abs=0.1)
        finally:
            pdf.close()

    def test_pdf_tall_canvas_centered(self) -> None:
        """Test the tall raster is drawn centered with margins left and right."""
        import pypdfium2 as pdfium

        data = Encoder().encode(_buffer(794, 2000, (0, 0, 0)), OutputFormat.PDF, QualityTier.LOW)

        pdf = pdfium.PdfDocument(data)
        try:
            rendered = pdf[0].render(scale=1).to_pil().convert("RGB")
        finally:
            pdf.close()

        width, height = rendered.size
        assert rendered.getpixel((2, height // 2)) == (255, 255, 255)
        assert rendered.getpixel((width - 3, height // 2)) == (255, 255, 255)
        assert rendered.getpixel((width // 2, 2)) == (0, 0, 0)
        assert rendered.getpixel((width // 2, height - 3)) == (0, 0, 0)

    def test_pdf_a4_canvas_fills_width(self) -> None:
        """Test an A4-ratio raster is drawn edge to edge from the top."""
        import pypdfium2 as pdfium

        data = Encoder().encode(_buffer(794, 1123, (0, 0, 0)), OutputFormat.PDF, QualityTier.LOW)

        pdf = pdfium.PdfDocument(data)
        try:
            rendered = pdf[0].render(scale=1).to_pil().convert("RGB")
        finally:
            pdf.close()

        width, height = rendered.size
        assert rendered.getpixel((3, 3)) == (0, 0, 0)
        assert rendered.getpixel((width - 4, height // 2)) == (0, 0, 0)

    def test_invalid_buffer(self) -> None:
        """Test inconsistent buffers raise EncodingError."""
        buffer = PixelBuffer(width=10, height=10, scale=1.0, data=b"short")

        with pytest.raises(EncodingError) as exc_info:
            Encoder().encode(buffer, OutputFormat.PNG, QualityTier.LOW)

        assert exc_info.value.stage == "generating"

    def test_serialization_failure_wrapped(self) -> None:
        """Test backend failures surface as EncodingError."""
        with patch("document_composer.core.encoder.canvas.Canvas", side_effect=RuntimeError("disk")):
            with pytest.raises(EncodingError) as exc_info:
                Encoder().encode(_buffer(), OutputFormat.PDF, QualityTier.LOW)

        assert isinstance(exc_info.value.cause, RuntimeError)
