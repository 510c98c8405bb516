# SPDX-License-Identifier: Apache-2.0
"""Export artifact returned by the processing pipeline."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Union

from document_composer.core.models import OutputFormat

# Feature tags in filename order
FEATURE_TAGS = ("letterhead", "signature")


def build_filename(
    document_name: str,
    tags: Iterable[str],
    output_format: Union[OutputFormat, str],
    when: Union[date, datetime],
) -> str:
    """Build the export filename.

    ``{base}{_tags}_{YYYY-MM-DD}.{format}`` where ``base`` is the document
    name up to its first dot and tags are emitted in letterhead, signature
    order.

    Example:
        >>> build_filename("report.pdf", ["signature", "letterhead"], "png", date(2024, 3, 5))
        'report_letterhead_signature_2024-03-05.png'
    """
    base = document_name.split(".")[0]
    present = set(tags)
    ordered = [tag for tag in FEATURE_TAGS if tag in present]
    feature = f"_{'_'.join(ordered)}" if ordered else ""
    fmt = OutputFormat(output_format).value
    day = when.date() if isinstance(when, datetime) else when
    return f"{base}{feature}_{day.isoformat()}.{fmt}"


@dataclass(frozen=True)
class ExportArtifact:
    """Encoded export owned by the caller.

    Attributes:
        id: Unique artifact id
        filename: Suggested download filename
        format: Output format
        data: Encoded bytes
        processed_at: Completion timestamp
        warnings: Non-fatal issues (omitted images, cleanup failures)
    """

    filename: str
    format: OutputFormat
    data: bytes = field(repr=False)
    processed_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    warnings: tuple[str, ...] = ()

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return {
            OutputFormat.PDF: "application/pdf",
            OutputFormat.PNG: "image/png",
            OutputFormat.JPG: "image/jpeg",
        }[self.format]

    def to_dict(self) -> dict[str, Any]:
        """Metadata without the encoded bytes."""
        return {
            "id": self.id,
            "filename": self.filename,
            "format": self.format.value,
            "byte_size": self.byte_size,
            "processed_at": self.processed_at.isoformat(),
            "warnings": list(self.warnings),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Path) -> Path:
        """Write the encoded bytes.

        Args:
            path: Target file, or a directory to place ``filename`` in.

        Returns:
            The written file path.
        """
        target = path / self.filename if path.is_dir() else path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.data)
        return target
