# SPDX-License-Identifier: Apache-2.0
"""Data models for document composition.

This module defines the inputs supplied by the collaborator UI (documents,
letterhead and signature specs), the layout tree produced by the composer,
and the pixel buffer handed from the rasterizer to the encoder.
"""

from __future__ import annotations

import io
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from PIL import Image

# Canonical A4 page size in CSS pixels (96 dpi) at scale 1.0
A4_WIDTH_PX = 794
A4_HEIGHT_PX = 1123

# A4 page size in millimetres
A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0


class Alignment(str, Enum):
    """Horizontal alignment / placement."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class SignatureStyle(str, Enum):
    """How the signature name is rendered."""

    HANDWRITTEN = "handwritten"
    TYPED = "typed"
    IMAGE = "image"


class QualityTier(str, Enum):
    """Rasterization / compression trade-off."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def scale(self) -> float:
        """Rasterizer scale factor."""
        return _TIER_SCALE[self]

    @property
    def jpeg_quality(self) -> float:
        """JPEG compression factor in [0, 1]."""
        return _TIER_JPEG_QUALITY[self]


_TIER_SCALE: dict[QualityTier, float] = {
    QualityTier.LOW: 1.0,
    QualityTier.MEDIUM: 1.5,
    QualityTier.HIGH: 2.0,
}

_TIER_JPEG_QUALITY: dict[QualityTier, float] = {
    QualityTier.LOW: 0.6,
    QualityTier.MEDIUM: 0.8,
    QualityTier.HIGH: 0.95,
}


class OutputFormat(str, Enum):
    """Export artifact format."""

    PDF = "pdf"
    PNG = "png"
    JPG = "jpg"


class BlockKind(str, Enum):
    """Layout element discriminator."""

    HEADER = "header"
    CONTENT = "content"
    SIGNATURE = "signature"


class Positioning(str, Enum):
    """Whether a block participates in normal flow."""

    FLOW = "flow"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class Point:
    """Position in document space."""

    x: float
    y: float


@dataclass(frozen=True)
class BBox:
    """Bounding box in document space (origin at top-left).

    Attributes:
        x: Left coordinate
        y: Top coordinate
        width: Box width
        height: Box height
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        """Right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Bottom edge."""
        return self.y + self.height

    def scaled(self, factor: float) -> BBox:
        """Return the box multiplied by a uniform scale factor."""
        return BBox(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Document:
    """Base document supplied by the collaborator. Immutable once created."""

    id: str
    name: str
    content: bytes = field(repr=False)
    mime_type: str
    size: int

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str) -> Document:
        """Create a document with a fresh id and the size derived from content."""
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            content=content,
            mime_type=mime_type,
            size=len(content),
        )

    @property
    def is_image(self) -> bool:
        """Whether the document is embedded as a bitmap."""
        return "image" in self.mime_type

    @property
    def kind(self) -> str:
        """Coarse document kind: image, pdf, word or other."""
        if self.is_image:
            return "image"
        if "pdf" in self.mime_type:
            return "pdf"
        if "word" in self.mime_type or "document" in self.mime_type:
            return "word"
        return "other"


@dataclass(frozen=True)
class LogoRef:
    """Letterhead logo.

    ``width``/``height`` are the intrinsic pixel size when known; the
    composer reserves the full logo box otherwise.
    """

    data: bytes = field(repr=False)
    position: Alignment = Alignment.LEFT
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class ColorSpec:
    """Letterhead colors (CSS hex strings)."""

    primary: str = "#4facfe"
    secondary: str = "#21262d"
    text: str = "#f0f6fc"
    background: str = "#0f1014"


def _default_sizes() -> dict[str, int]:
    return {"company": 24, "address": 14, "contact": 12}


def _default_weights() -> dict[str, int]:
    return {"company": 700, "address": 400, "contact": 400}


@dataclass(frozen=True)
class FontSpec:
    """Letterhead font family with per-field size and weight."""

    family: str = "Roboto"
    sizes: dict[str, int] = field(default_factory=_default_sizes)
    weights: dict[str, int] = field(default_factory=_default_weights)

    def size_for(self, field_name: str) -> int:
        return self.sizes.get(field_name, _default_sizes()[field_name])

    def weight_for(self, field_name: str) -> int:
        return self.weights.get(field_name, _default_weights()[field_name])


@dataclass(frozen=True)
class Margins:
    top: float = 20
    right: float = 20
    bottom: float = 20
    left: float = 20


@dataclass(frozen=True)
class LayoutSpec:
    """Letterhead layout settings."""

    header_height: float = 120
    footer_height: float = 80
    margins: Margins = field(default_factory=Margins)


@dataclass(frozen=True)
class LetterheadSpec:
    """Branded header configuration."""

    company_name: str
    address: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[LogoRef] = None
    colors: ColorSpec = field(default_factory=ColorSpec)
    fonts: FontSpec = field(default_factory=FontSpec)
    layout: LayoutSpec = field(default_factory=LayoutSpec)

    @property
    def is_renderable(self) -> bool:
        """A header is rendered only for a non-blank company name."""
        return bool(self.company_name.strip())

    @property
    def contact_line(self) -> str:
        """Non-empty contact fields joined with `` | ``."""
        parts = [p for p in (self.phone, self.email, self.website) if p]
        return " | ".join(parts)


@dataclass(frozen=True)
class SignatureImageRef:
    """Signature image (optionally background-removed upstream)."""

    data: bytes = field(repr=False)
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class SignatureSpec:
    """Signature block configuration."""

    name: str
    title: str = ""
    style: SignatureStyle = SignatureStyle.TYPED
    color: str = "#000000"
    font_size: int = 24
    font_family: str = "Arial"
    alignment: Alignment = Alignment.LEFT
    coordinates: Optional[Point] = None
    image: Optional[SignatureImageRef] = None

    @property
    def uses_image(self) -> bool:
        return self.style is SignatureStyle.IMAGE and self.image is not None

    @property
    def is_renderable(self) -> bool:
        """Rendered for a non-blank name, or an image in the image style."""
        return bool(self.name.strip()) or self.uses_image


# ---------------------------------------------------------------------------
# Layout tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextRun:
    """A single line of styled text."""

    text: str
    font_family: str
    size: float
    weight: int = 400
    color: str = "#000000"
    alignment: Alignment = Alignment.LEFT
    line_height: float = 1.2

    @property
    def is_bold(self) -> bool:
        return self.weight >= 600


@dataclass(frozen=True)
class ImageRef:
    """Embedded image reference, resolved by the rasterizer."""

    key: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class TextInstruction:
    run: TextRun
    bbox: BBox


@dataclass(frozen=True)
class ImageInstruction:
    """Draw an image fitted (contain) and centered inside ``bbox``."""

    image: ImageRef
    bbox: BBox


@dataclass(frozen=True)
class RuleInstruction:
    """Filled horizontal rule."""

    bbox: BBox
    color: str


@dataclass(frozen=True)
class PlaceholderInstruction:
    """Placeholder card for an opaque (non-image) document."""

    bbox: BBox
    title: str
    file_name: str
    size_label: str
    note: str
    accent: str


DrawInstruction = Union[
    TextInstruction, ImageInstruction, RuleInstruction, PlaceholderInstruction
]


@dataclass(frozen=True)
class LayoutElement:
    """One block of the layout tree.

    Attributes:
        kind: header, content or signature
        bbox: Block bounds in document space
        instructions: Ordered draw instructions
        positioning: Flow or absolute positioning
        alignment: Horizontal alignment of the block's text
        attachment: Opaque document bytes carried through unparsed
    """

    kind: BlockKind
    bbox: BBox
    instructions: tuple[DrawInstruction, ...] = ()
    positioning: Positioning = Positioning.FLOW
    alignment: Alignment = Alignment.LEFT
    attachment: Optional[bytes] = field(default=None, repr=False)

    def images(self) -> list[ImageRef]:
        """Image references used by this block."""
        return [i.image for i in self.instructions if isinstance(i, ImageInstruction)]


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


def canvas_size(scale: float) -> tuple[int, int]:
    """A4 canvas size in pixels for a scale factor."""
    return int(A4_WIDTH_PX * scale + 0.5), int(A4_HEIGHT_PX * scale + 0.5)


@dataclass(frozen=True)
class PixelBuffer:
    """Rasterized page.

    Attributes:
        width: Width in pixels
        height: Height in pixels
        scale: Scale factor relative to document space
        data: Raw pixel bytes in ``mode`` layout
        mode: Pillow image mode
        render_errors: Non-fatal errors absorbed while rasterizing
    """

    width: int
    height: int
    scale: float
    data: bytes = field(repr=False)
    mode: str = "RGB"
    render_errors: tuple[Any, ...] = ()

    @classmethod
    def from_image(
        cls, image: Image.Image, scale: float, render_errors: tuple[Any, ...] = ()
    ) -> PixelBuffer:
        return cls(
            width=image.width,
            height=image.height,
            scale=scale,
            data=image.tobytes(),
            mode=image.mode,
            render_errors=render_errors,
        )

    def to_image(self) -> Image.Image:
        """Rebuild a Pillow image from the raw pixel data."""
        return Image.frombytes(self.mode, (self.width, self.height), self.data)


def probe_image_size(data: bytes) -> Optional[tuple[int, int]]:
    """Read an image's pixel size from its header without decoding it.

    Returns:
        (width, height) or None if the bytes are not a recognised image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (OSError, ValueError):
        return None
