# SPDX-License-Identifier: Apache-2.0
"""Preview thumbnails for export artifacts."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image

from document_composer.core.models import OutputFormat
from document_composer.output.export_artifact import ExportArtifact

logger = logging.getLogger(__name__)


@dataclass
class PreviewConfig:
    """Configuration for preview generation.

    Attributes:
        width: Target preview width in pixels.
            Height is calculated to maintain aspect ratio.

    Note:
        Output format is fixed to PNG.
    """

    width: int = 400


class PreviewGenerator:
    """Generate PNG previews from export artifacts.

    PDF artifacts are rendered with pypdfium2; raster artifacts are resized
    with Pillow.
    """

    def __init__(self, config: PreviewConfig | None = None) -> None:
        """Initialize PreviewGenerator.

        Args:
            config: Preview generation configuration.
        """
        self._config = config or PreviewConfig()

    def generate(self, artifact: ExportArtifact) -> tuple[bytes, int, int]:
        """Generate a preview of the artifact's first page.

        Args:
            artifact: Export artifact.

        Returns:
            Tuple of (png_bytes, width, height).

        Raises:
            ValueError: If the artifact is empty or a PDF has no pages.
        """
        if not artifact.data:
            raise ValueError("Artifact has no data")

        if artifact.format is OutputFormat.PDF:
            image = self._render_pdf(artifact.data)
        else:
            image = self._resize_raster(artifact.data)

        try:
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue(), image.width, image.height
        finally:
            image.close()

    def _render_pdf(self, data: bytes) -> Image.Image:
        import pypdfium2 as pdfium

        doc = pdfium.PdfDocument(data)
        try:
            if len(doc) == 0:
                raise ValueError("PDF has no pages")
            page = doc[0]
            scale = self._config.width / page.get_width()
            bitmap = page.render(scale=scale)
            return bitmap.to_pil().convert("RGB")
        finally:
            doc.close()

    def _resize_raster(self, data: bytes) -> Image.Image:
        with Image.open(io.BytesIO(data)) as img:
            width = self._config.width
            height = max(1, int(round(img.height * width / img.width)))
            logger.debug("Preview %dx%d -> %dx%d", img.width, img.height, width, height)
            return img.convert("RGB").resize((width, height), Image.Resampling.LANCZOS)
