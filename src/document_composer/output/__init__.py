# SPDX-License-Identifier: Apache-2.0
"""Export artifact and preview modules."""

from document_composer.output.export_artifact import (
    FEATURE_TAGS,
    ExportArtifact,
    build_filename,
)
from document_composer.output.preview import PreviewConfig, PreviewGenerator

__all__ = [
    "ExportArtifact",
    "FEATURE_TAGS",
    "PreviewConfig",
    "PreviewGenerator",
    "build_filename",
]
