# SPDX-License-Identifier: Apache-2.0
"""Tests for Rasterizer."""

from __future__ import annotations

from typing import Callable
from unittest.mock import patch

import pytest

from document_composer.core.errors import RenderError
from document_composer.core.layout_composer import compose
from document_composer.core.models import (
    BBox,
    BlockKind,
    Document,
    ImageInstruction,
    ImageRef,
    LayoutElement,
    LetterheadSpec,
    LogoRef,
    PixelBuffer,
    QualityTier,
    SignatureSpec,
    canvas_size,
)
from document_composer.core.rasterizer import (
    Rasterizer,
    RenderSurface,
    decode_image,
    iter_image_refs,
)


def _image_layout(data: bytes) -> list[LayoutElement]:
    return [
        LayoutElement(
            kind=BlockKind.CONTENT,
            bbox=BBox(75, 115, 644, 400),
            instructions=(ImageInstruction(ImageRef("document", data), BBox(75, 115, 100, 100)),),
        )
    ]


class TestQualityTier:
    """Tests for tier scale mapping."""

    @pytest.mark.parametrize(
        ("tier", "scale", "size"),
        [
            (QualityTier.LOW, 1.0, (794, 1123)),
            (QualityTier.MEDIUM, 1.5, (1191, 1685)),
            (QualityTier.HIGH, 2.0, (1588, 2246)),
        ],
    )
    def test_scale_and_canvas(self, tier: QualityTier, scale: float, size: tuple[int, int]) -> None:
        """Test tier scale factors and resulting canvas sizes."""
        assert tier.scale == scale
        assert canvas_size(tier.scale) == size


class TestDecode:
    """Tests for image resolution."""

    def test_decode_valid(self, png_factory: Callable[..., bytes]) -> None:
        """Test valid bytes decode to RGBA."""
        image = decode_image(ImageRef("x", png_factory(10, 5)))

        assert image.size == (10, 5)
        assert image.mode == "RGBA"

    def test_decode_invalid(self) -> None:
        """Test invalid bytes raise RenderError with the image key."""
        with pytest.raises(RenderError) as exc_info:
            decode_image(ImageRef("logo", b"garbage"))

        assert exc_info.value.image_key == "logo"
        assert exc_info.value.stage == "rendering"

    def test_iter_image_refs_dedupes(self, png_factory: Callable[..., bytes]) -> None:
        """Test repeated keys are resolved once."""
        layout = _image_layout(png_factory()) * 2

        assert [r.key for r in iter_image_refs(layout)] == ["document"]

    async def test_async_resolution_waits_for_all(self, png_factory: Callable[..., bytes]) -> None:
        """Test async resolution returns every outcome."""
        layout = [
            LayoutElement(
                kind=BlockKind.HEADER,
                bbox=BBox(0, 0, 10, 10),
                instructions=(
                    ImageInstruction(ImageRef("logo", png_factory()), BBox(0, 0, 10, 10)),
                    ImageInstruction(ImageRef("broken", b"nope"), BBox(0, 0, 10, 10)),
                ),
            )
        ]

        resolved = await Rasterizer().resolve_images_async(layout)

        assert set(resolved.images) == {"logo"}
        assert [e.image_key for e in resolved.errors] == ["broken"]
        resolved.close()


class TestRasterize:
    """Tests for full rasterization."""

    @pytest.mark.parametrize("tier", list(QualityTier))
    def test_buffer_dimensions(
        self,
        rasterizer: Rasterizer,
        pdf_document: Document,
        letterhead: LetterheadSpec,
        signature: SignatureSpec,
        tier: QualityTier,
    ) -> None:
        """Test buffer size is the A4 size times the tier scale."""
        buffer = rasterizer.rasterize(compose(pdf_document, letterhead, signature), tier)

        assert (buffer.width, buffer.height) == canvas_size(tier.scale)
        assert buffer.scale == tier.scale
        assert len(buffer.data) == buffer.width * buffer.height * 3

    def test_deterministic(
        self,
        rasterizer: Rasterizer,
        pdf_document: Document,
        letterhead: LetterheadSpec,
        signature: SignatureSpec,
    ) -> None:
        """Test identical input produces byte-identical buffers."""
        layout = compose(pdf_document, letterhead, signature)

        first = rasterizer.rasterize(layout, QualityTier.LOW)
        second = rasterizer.rasterize(layout, QualityTier.LOW)

        assert first.data == second.data

    def test_draws_content(self, rasterizer: Rasterizer, pdf_document: Document) -> None:
        """Test the page is not blank."""
        buffer = rasterizer.rasterize(compose(pdf_document), QualityTier.LOW)
        image = buffer.to_image()

        assert image.getextrema() != ((255, 255), (255, 255), (255, 255))

    def test_image_pasted(self, rasterizer: Rasterizer, png_factory: Callable[..., bytes]) -> None:
        """Test an embedded image appears at its scaled position."""
        layout = _image_layout(png_factory(100, 100, (0, 0, 255, 255)))

        image = rasterizer.rasterize(layout, QualityTier.HIGH).to_image()

        assert image.getpixel((int(125 * 2), int(165 * 2))) == (0, 0, 255)
        assert image.getpixel((10, 10)) == (255, 255, 255)

    @pytest.mark.parametrize(("tier", "expected"), [(QualityTier.LOW, 100), (QualityTier.HIGH, 400)])
    def test_small_logo_drawn_at_intrinsic_size(
        self,
        rasterizer: Rasterizer,
        pdf_document: Document,
        png_factory: Callable[..., bytes],
        tier: QualityTier,
        expected: int,
    ) -> None:
        """Test a 10x10 logo is drawn 10x10 per scale unit, not stretched to the logo box."""
        spec = LetterheadSpec(company_name="Acme", logo=LogoRef(data=png_factory(10, 10, (255, 0, 0, 255))))

        image = rasterizer.rasterize(compose(pdf_document, spec), tier).to_image()

        red = sum(1 for pixel in image.getdata() if pixel == (255, 0, 0))
        assert red == expected

    def test_image_never_enlarged_past_intrinsic_size(
        self, rasterizer: Rasterizer, png_factory: Callable[..., bytes]
    ) -> None:
        """Test a box larger than the image does not upscale it."""
        layout = _image_layout(png_factory(10, 10, (0, 0, 255, 255)))

        image = rasterizer.rasterize(layout, QualityTier.LOW).to_image()

        assert image.getpixel((80 + 45, 115 + 45)) == (0, 0, 255)
        assert image.getpixel((80 + 45 - 6, 115 + 45)) == (255, 255, 255)

    def test_failed_image_is_omitted(self, rasterizer: Rasterizer, pdf_document: Document) -> None:
        """Test a broken logo is recorded but does not abort rasterization."""
        spec = LetterheadSpec(company_name="Acme", logo=LogoRef(data=b"broken"))

        buffer = rasterizer.rasterize(compose(pdf_document, spec), QualityTier.LOW)

        assert isinstance(buffer, PixelBuffer)
        assert len(buffer.render_errors) == 1
        assert buffer.render_errors[0].image_key == "logo"

    def test_surface_released_on_error(self, rasterizer: Rasterizer, pdf_document: Document) -> None:
        """Test the render surface is released once when drawing fails."""
        surfaces: list[RenderSurface] = []
        original_init = RenderSurface.__init__

        def tracking_init(self: RenderSurface, width: int, height: int) -> None:
            original_init(self, width, height)
            surfaces.append(self)

        with patch.object(RenderSurface, "__init__", tracking_init), patch.object(
            Rasterizer, "_draw_placeholder", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(RuntimeError):
                rasterizer.rasterize(compose(pdf_document), QualityTier.LOW)

        assert len(surfaces) == 1
        assert surfaces[0].released


class TestRenderSurface:
    """Tests for RenderSurface cleanup."""

    def test_release_once(self) -> None:
        """Test release closes the canvas exactly once."""
        surface = RenderSurface(10, 10)

        with patch.object(surface.image, "close") as close:
            with surface:
                pass
            surface.release()

        close.assert_called_once()
        assert surface.released

    def test_release_failure_is_absorbed(self) -> None:
        """Test a failing release is logged as a ResourceError, not raised."""
        surface = RenderSurface(10, 10)

        with patch.object(surface.image, "close", side_effect=OSError("busy")):
            surface.release()

        assert surface.released
        assert surface.release_error is not None
        assert surface.release_error.stage == "rendering"
