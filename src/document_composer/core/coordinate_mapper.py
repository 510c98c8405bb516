# SPDX-License-Identifier: Apache-2.0
"""Screen-to-document coordinate mapping for signature dragging.

The interactive front end calls :meth:`CoordinateMapper.drag` on every
pointer move while a drag is active; the batch pipeline uses
:func:`clamp_position` to keep stored coordinates inside the page.
"""

from __future__ import annotations

from document_composer.core.models import A4_HEIGHT_PX, A4_WIDTH_PX, Point

MIN_SCALE = 0.5
MAX_SCALE = 2.0

# Page padding (20mm at 96 dpi)
DEFAULT_PADDING = 75.0

SIGNATURE_FOOTPRINT = (200.0, 80.0)
DEFAULT_ANCHOR = Point(20.0, 400.0)


def clamp_position(
    position: Point,
    usable_width: float,
    usable_height: float,
    element_width: float = SIGNATURE_FOOTPRINT[0],
    element_height: float = SIGNATURE_FOOTPRINT[1],
) -> Point:
    """Clamp each axis of ``position`` to ``[0, usable - element]``.

    If the element does not fit, the axis collapses to 0.
    """
    max_x = max(0.0, usable_width - element_width)
    max_y = max(0.0, usable_height - element_height)
    return Point(
        x=max(0.0, min(position.x, max_x)),
        y=max(0.0, min(position.y, max_y)),
    )


class CoordinateMapper:
    """Convert pointer-drag deltas in screen space into document space.

    The mapper holds only immutable geometry; every call is pure.
    """

    def __init__(
        self,
        container_width: float = A4_WIDTH_PX,
        container_height: float = A4_HEIGHT_PX,
        padding: float = DEFAULT_PADDING,
        element_size: tuple[float, float] = SIGNATURE_FOOTPRINT,
    ) -> None:
        """Initialize CoordinateMapper.

        Args:
            container_width: Container width in screen pixels.
            container_height: Container height in screen pixels.
            padding: Padding on each side of the container.
            element_size: Footprint (width, height) of the dragged element.
        """
        self._container_width = float(container_width)
        self._container_height = float(container_height)
        self._padding = float(padding)
        self._element_width, self._element_height = (float(v) for v in element_size)

    @staticmethod
    def _check_scale(scale: float) -> None:
        if not MIN_SCALE <= scale <= MAX_SCALE:
            raise ValueError(
                f"Zoom scale must be within [{MIN_SCALE}, {MAX_SCALE}], got {scale}"
            )

    def usable_size(self, scale: float) -> tuple[float, float]:
        """Container size minus padding, in document units."""
        self._check_scale(scale)
        return (
            (self._container_width - self._padding * 2) / scale,
            (self._container_height - self._padding * 2) / scale,
        )

    def drag(
        self,
        drag_start: Point,
        doc_start: Point,
        current: Point,
        scale: float,
    ) -> Point:
        """Compute the new document position for an active drag.

        Args:
            drag_start: Screen position where the drag began.
            doc_start: Document position of the element when the drag began.
            current: Current screen position.
            scale: Active zoom factor in [0.5, 2.0].

        Returns:
            Clamped document-space position.
        """
        usable_width, usable_height = self.usable_size(scale)
        candidate = Point(
            x=doc_start.x + (current.x - drag_start.x) / scale,
            y=doc_start.y + (current.y - drag_start.y) / scale,
        )
        return clamp_position(
            candidate,
            usable_width,
            usable_height,
            self._element_width,
            self._element_height,
        )

    @staticmethod
    def reset() -> Point:
        """Default signature anchor."""
        return DEFAULT_ANCHOR
