# SPDX-License-Identifier: Apache-2.0
"""Core composition, rasterization and encoding modules."""

from .coordinate_mapper import CoordinateMapper, clamp_position
from .encoder import Encoder, PagePlacement, compute_page_fit
from .errors import (
    EncodingError,
    PipelineCancelledError,
    PipelineError,
    RenderError,
    ResourceError,
    ValidationError,
)
from .fonts import FontResolver
from .layout_composer import LayoutComposer, compose
from .models import (
    Alignment,
    BBox,
    BlockKind,
    ColorSpec,
    Document,
    FontSpec,
    LayoutElement,
    LayoutSpec,
    LetterheadSpec,
    LogoRef,
    Margins,
    OutputFormat,
    PixelBuffer,
    Point,
    Positioning,
    QualityTier,
    SignatureImageRef,
    SignatureSpec,
    SignatureStyle,
)
from .rasterizer import Rasterizer, RenderSurface

__all__ = [
    "Alignment",
    "BBox",
    "BlockKind",
    "ColorSpec",
    "CoordinateMapper",
    "Document",
    "Encoder",
    "EncodingError",
    "FontResolver",
    "FontSpec",
    "LayoutComposer",
    "LayoutElement",
    "LayoutSpec",
    "LetterheadSpec",
    "LogoRef",
    "Margins",
    "OutputFormat",
    "PagePlacement",
    "PipelineCancelledError",
    "PipelineError",
    "PixelBuffer",
    "Point",
    "Positioning",
    "QualityTier",
    "Rasterizer",
    "RenderError",
    "RenderSurface",
    "ResourceError",
    "SignatureImageRef",
    "SignatureSpec",
    "SignatureStyle",
    "ValidationError",
    "clamp_position",
    "compose",
    "compute_page_fit",
]
