# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures for document composer tests."""

from __future__ import annotations

import io
from typing import Callable

import pytest
from PIL import Image

from document_composer.core.fonts import FontResolver
from document_composer.core.models import (
    Alignment,
    Document,
    LetterheadSpec,
    SignatureSpec,
)
from document_composer.core.rasterizer import Rasterizer


def make_png(width: int = 40, height: int = 20, color: tuple[int, int, int, int] = (200, 30, 30, 255)) -> bytes:
    """Encode a solid-color PNG."""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def pdf_document() -> Document:
    return Document.from_bytes("report.pdf", b"%PDF-1.4 fake content", "application/pdf")


@pytest.fixture
def image_document() -> Document:
    return Document.from_bytes("scan.png", make_png(400, 300), "image/png")


@pytest.fixture
def letterhead() -> LetterheadSpec:
    return LetterheadSpec(
        company_name="Acme Corp",
        address="1 Main Street\nSpringfield",
        phone="555-0100",
        email="info@acme.test",
    )


@pytest.fixture
def signature() -> SignatureSpec:
    return SignatureSpec(name="Jane Doe", title="Director", alignment=Alignment.RIGHT)


@pytest.fixture
def rasterizer() -> Rasterizer:
    """Rasterizer restricted to Pillow's bundled font for reproducibility."""
    return Rasterizer(font_resolver_factory=lambda: FontResolver(font_dirs=[]))
