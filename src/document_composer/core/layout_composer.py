# SPDX-License-Identifier: Apache-2.0
"""Layout tree composition.

Builds the ordered block list (header, content, signature) for a single A4
page. All geometry is in document space: 794x1123 units with 75 units of
page padding. Vertical margins between blocks collapse the way CSS block
margins do: the gap is the larger of the two adjoining margins.
"""

from __future__ import annotations

import logging
from typing import Optional

from document_composer.core.coordinate_mapper import clamp_position
from document_composer.core.helpers import estimate_text_width, format_file_size
from document_composer.core.models import (
    A4_HEIGHT_PX,
    A4_WIDTH_PX,
    Alignment,
    BBox,
    BlockKind,
    Document,
    DrawInstruction,
    ImageInstruction,
    ImageRef,
    LayoutElement,
    LetterheadSpec,
    LogoRef,
    PlaceholderInstruction,
    Positioning,
    RuleInstruction,
    SignatureSpec,
    SignatureStyle,
    TextInstruction,
    TextRun,
    probe_image_size,
)

logger = logging.getLogger(__name__)

PAGE_PADDING = 75.0
CONTENT_LEFT = PAGE_PADDING
CONTENT_WIDTH = A4_WIDTH_PX - PAGE_PADDING * 2
CONTENT_RIGHT = CONTENT_LEFT + CONTENT_WIDTH

# Header
LOGO_BOX = (120.0, 80.0)
LOGO_GAP = 20.0
HEADER_PADDING_BOTTOM = 20.0
HEADER_RULE_WIDTH = 2.0
HEADER_MARGIN_BOTTOM = 30.0

# Content
CONTENT_MARGIN = 40.0
CONTENT_MIN_HEIGHT = 400.0
PLACEHOLDER_HEIGHT = 300.0

# Signature
SIGNATURE_MARGIN_TOP = 60.0
SIGNATURE_MIN_WIDTH = 200.0
SIGNATURE_IMAGE_BOX = (200.0, 80.0)
SIGNATURE_TITLE_SIZE = 12.0
SIGNATURE_TITLE_COLOR = "#666666"
SIGNATURE_RULE_COLOR = "#cccccc"
SCRIPT_FAMILY = "cursive"
PLACEHOLDER_FAMILY = "Arial"

PLACEHOLDER_STYLES: dict[str, tuple[str, str, str]] = {
    # kind: (title, accent, note)
    "pdf": (
        "PDF Document",
        "#dc3545",
        "PDF content will be preserved in the final document",
    ),
    "word": (
        "Word Document",
        "#2563eb",
        "Document content will be preserved in the final output",
    ),
    "other": (
        "Document",
        "#2563eb",
        "Document content will be preserved in the final output",
    ),
}


def fit_contain(
    width: Optional[float],
    height: Optional[float],
    max_width: float,
    max_height: float,
) -> tuple[float, float]:
    """Fit an intrinsic size inside a box, preserving aspect ratio.

    Unknown or degenerate sizes take the whole box. Images are never
    upscaled.
    """
    if not width or not height or width <= 0 or height <= 0:
        return max_width, max_height
    ratio = min(max_width / width, max_height / height, 1.0)
    return width * ratio, height * ratio


def _intrinsic_size(
    width: Optional[int], height: Optional[int], data: bytes
) -> tuple[Optional[float], Optional[float]]:
    """Declared size, or the size read from the image header when undeclared."""
    if width and height:
        return width, height
    probed = probe_image_size(data)
    if probed is None:
        return None, None
    return probed


def _aligned_x(alignment: Alignment, left: float, available: float, width: float) -> float:
    if alignment is Alignment.CENTER:
        return left + (available - width) / 2
    if alignment is Alignment.RIGHT:
        return left + available - width
    return left


def header_text_alignment(logo: Optional[LogoRef]) -> Alignment:
    """Text alignment mirrors the logo: logo right => text left, else right."""
    if logo is not None and logo.position is Alignment.RIGHT:
        return Alignment.LEFT
    return Alignment.RIGHT


class LayoutComposer:
    """Compose a document and optional overlays into a layout tree."""

    def compose(
        self,
        document: Document,
        letterhead: Optional[LetterheadSpec] = None,
        signature: Optional[SignatureSpec] = None,
    ) -> list[LayoutElement]:
        """Build the ordered layout tree.

        Args:
            document: Base document.
            letterhead: Optional header spec; skipped unless renderable.
            signature: Optional signature spec; skipped unless renderable.

        Returns:
            Layout elements in header, content, signature order.
        """
        elements: list[LayoutElement] = []
        cursor = PAGE_PADDING
        pending_margin = 0.0

        if letterhead is not None and letterhead.is_renderable:
            header = self._compose_header(letterhead, cursor)
            elements.append(header)
            cursor = header.bbox.bottom
            pending_margin = HEADER_MARGIN_BOTTOM

        # A flowing signature must still fit above the bottom padding, so its
        # height is reserved before the content block is sized.
        reserved = 0.0
        if signature is not None and signature.is_renderable and signature.coordinates is None:
            reserved = (
                max(CONTENT_MARGIN, SIGNATURE_MARGIN_TOP)
                + self._compose_signature(signature, 0.0).bbox.height
            )

        content_top = cursor + max(pending_margin, CONTENT_MARGIN)
        available = max(1.0, A4_HEIGHT_PX - PAGE_PADDING - content_top - reserved)
        content = self._compose_content(document, content_top, available)
        elements.append(content)
        cursor = content.bbox.bottom
        pending_margin = CONTENT_MARGIN

        if signature is not None and signature.is_renderable:
            signature_top = cursor + max(pending_margin, SIGNATURE_MARGIN_TOP)
            elements.append(self._compose_signature(signature, signature_top))

        logger.debug(
            "Composed %d blocks: %s",
            len(elements),
            ", ".join(f"{e.kind.value}@{e.bbox.to_dict()}" for e in elements),
        )
        return elements

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def _compose_header(self, letterhead: LetterheadSpec, top: float) -> LayoutElement:
        fonts = letterhead.fonts
        colors = letterhead.colors
        logo = letterhead.logo
        alignment = header_text_alignment(logo)

        logo_w, logo_h = (0.0, 0.0)
        if logo is not None:
            logo_w, logo_h = fit_contain(*_intrinsic_size(logo.width, logo.height, logo.data), *LOGO_BOX)

        # Text region and logo placement
        text_left = CONTENT_LEFT
        text_width = CONTENT_WIDTH
        text_top = top
        logo_bbox: Optional[BBox] = None
        if logo is not None:
            if logo.position is Alignment.CENTER:
                logo_bbox = BBox(CONTENT_LEFT + (CONTENT_WIDTH - logo_w) / 2, top, logo_w, logo_h)
                text_top = top + logo_h + 10
            elif logo.position is Alignment.RIGHT:
                logo_bbox = BBox(CONTENT_RIGHT - logo_w, top, logo_w, logo_h)
                text_width = CONTENT_WIDTH - logo_w - LOGO_GAP
            else:
                logo_bbox = BBox(CONTENT_LEFT, top, logo_w, logo_h)
                text_left = CONTENT_LEFT + logo_w + LOGO_GAP
                text_width = CONTENT_WIDTH - logo_w - LOGO_GAP

        instructions: list[DrawInstruction] = []
        if logo is not None and logo_bbox is not None:
            instructions.append(ImageInstruction(ImageRef("logo", logo.data), logo_bbox))

        y = text_top
        company = TextRun(
            text=letterhead.company_name.strip(),
            font_family=fonts.family,
            size=fonts.size_for("company"),
            weight=fonts.weight_for("company"),
            color=colors.primary,
            alignment=alignment,
            line_height=1.2,
        )
        y = self._append_line(instructions, company, text_left, text_width, y)
        y += 10

        address_lines = [line for line in letterhead.address.split("\n") if line.strip()]
        if address_lines:
            y += 5
            for line in address_lines:
                run = TextRun(
                    text=line.strip(),
                    font_family=fonts.family,
                    size=fonts.size_for("address"),
                    weight=fonts.weight_for("address"),
                    color=colors.text,
                    alignment=alignment,
                    line_height=1.4,
                )
                y = self._append_line(instructions, run, text_left, text_width, y)
            y += 5

        contacts = letterhead.contact_line
        if contacts:
            y += 5
            run = TextRun(
                text=contacts,
                font_family=fonts.family,
                size=fonts.size_for("contact"),
                weight=fonts.weight_for("contact"),
                color=colors.text,
                alignment=alignment,
                line_height=1.4,
            )
            y = self._append_line(instructions, run, text_left, text_width, y)
            y += 5

        content_height = max(y - top, logo_h)
        inner_height = max(float(letterhead.layout.header_height), content_height)
        rule_top = top + inner_height + HEADER_PADDING_BOTTOM
        instructions.append(
            RuleInstruction(BBox(CONTENT_LEFT, rule_top, CONTENT_WIDTH, HEADER_RULE_WIDTH), colors.primary)
        )

        return LayoutElement(
            kind=BlockKind.HEADER,
            bbox=BBox(CONTENT_LEFT, top, CONTENT_WIDTH, rule_top + HEADER_RULE_WIDTH - top),
            instructions=tuple(instructions),
            alignment=alignment,
        )

    @staticmethod
    def _append_line(
        instructions: list[DrawInstruction],
        run: TextRun,
        left: float,
        width: float,
        top: float,
    ) -> float:
        height = run.size * run.line_height
        instructions.append(TextInstruction(run, BBox(left, top, width, height)))
        return top + height

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _compose_content(self, document: Document, top: float, available: float) -> LayoutElement:
        """Build the content block.

        ``available`` is the height left between ``top`` and the bottom page
        padding once a flowing signature is reserved. Images shrink to fit
        it; the minimum block height gives way to it.
        """
        min_height = min(CONTENT_MIN_HEIGHT, available)
        if document.is_image:
            size = probe_image_size(document.content)
            if size is None:
                # Keep the slot; the rasterizer reports the decode failure.
                image_bbox = BBox(CONTENT_LEFT, top, CONTENT_WIDTH, min_height)
            else:
                width, height = fit_contain(size[0], size[1], CONTENT_WIDTH, available)
                image_bbox = BBox(CONTENT_LEFT + (CONTENT_WIDTH - width) / 2, top, width, height)
            return LayoutElement(
                kind=BlockKind.CONTENT,
                bbox=BBox(CONTENT_LEFT, top, CONTENT_WIDTH, max(min_height, image_bbox.height)),
                instructions=(ImageInstruction(ImageRef("document", document.content), image_bbox),),
                alignment=Alignment.CENTER,
            )

        title, accent, note = PLACEHOLDER_STYLES[document.kind]
        placeholder = PlaceholderInstruction(
            bbox=BBox(CONTENT_LEFT, top, CONTENT_WIDTH, min(PLACEHOLDER_HEIGHT, min_height)),
            title=title,
            file_name=document.name,
            size_label=format_file_size(document.size),
            note=note,
            accent=accent,
        )
        return LayoutElement(
            kind=BlockKind.CONTENT,
            bbox=BBox(CONTENT_LEFT, top, CONTENT_WIDTH, min_height),
            instructions=(placeholder,),
            alignment=Alignment.CENTER,
            attachment=document.content,
        )

    # ------------------------------------------------------------------
    # Signature
    # ------------------------------------------------------------------

    def _compose_signature(self, signature: SignatureSpec, flow_top: float) -> LayoutElement:
        if signature.coordinates is not None:
            position = clamp_position(
                signature.coordinates,
                A4_WIDTH_PX - PAGE_PADDING * 2,
                A4_HEIGHT_PX - PAGE_PADDING * 2,
            )
            positioning = Positioning.ABSOLUTE
            alignment = Alignment.LEFT
        else:
            position = None
            positioning = Positioning.FLOW
            alignment = signature.alignment

        title = signature.title.strip()
        name = signature.name.strip()
        image = signature.image if signature.style is SignatureStyle.IMAGE else None
        image_w, image_h = (0.0, 0.0)
        if image is not None:
            image_w, image_h = fit_contain(
                *_intrinsic_size(image.width, image.height, image.data), *SIGNATURE_IMAGE_BOX
            )
            content_width = image_w
        else:
            content_width = estimate_text_width(name, signature.font_size)
        if title:
            content_width = max(content_width, estimate_text_width(title, SIGNATURE_TITLE_SIZE))
        width = min(max(SIGNATURE_MIN_WIDTH, content_width), CONTENT_WIDTH)

        if position is None:
            left = _aligned_x(alignment, CONTENT_LEFT, CONTENT_WIDTH, width)
            top = flow_top
        else:
            left, top = position.x, position.y

        instructions: list[DrawInstruction] = []
        y = top
        if image is not None:
            image_left = _aligned_x(alignment, left, width, image_w)
            instructions.append(
                ImageInstruction(
                    ImageRef("signature", image.data),
                    BBox(image_left, y, image_w, image_h),
                )
            )
            y += image_h + 10
        else:
            family = SCRIPT_FAMILY if signature.style is SignatureStyle.HANDWRITTEN else signature.font_family
            run = TextRun(
                text=name,
                font_family=family,
                size=signature.font_size,
                color=signature.color,
                alignment=alignment,
                line_height=1.2,
            )
            y = self._append_line(instructions, run, left, width, y) + 10

        if title:
            y += 5
            instructions.append(RuleInstruction(BBox(left, y, width, 1.0), SIGNATURE_RULE_COLOR))
            y += 1.0 + 5
            run = TextRun(
                text=title,
                font_family=signature.font_family,
                size=SIGNATURE_TITLE_SIZE,
                color=SIGNATURE_TITLE_COLOR,
                alignment=alignment,
                line_height=1.4,
            )
            y = self._append_line(instructions, run, left, width, y)

        return LayoutElement(
            kind=BlockKind.SIGNATURE,
            bbox=BBox(left, top, width, y - top),
            instructions=tuple(instructions),
            positioning=positioning,
            alignment=alignment,
        )


def compose(
    document: Document,
    letterhead: Optional[LetterheadSpec] = None,
    signature: Optional[SignatureSpec] = None,
) -> list[LayoutElement]:
    """Compose with a default :class:`LayoutComposer`."""
    return LayoutComposer().compose(document, letterhead, signature)
