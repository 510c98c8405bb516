# SPDX-License-Identifier: Apache-2.0
"""Pipeline error definitions.

The taxonomy lives in :mod:`document_composer.core.errors` so the
rasterizer and encoder can raise it without importing the pipeline.
"""

from __future__ import annotations

from document_composer.core.errors import (
    EncodingError,
    PipelineCancelledError,
    PipelineError,
    RenderError,
    ResourceError,
    ValidationError,
)

# Errors that end a run in the ``error`` stage
FATAL_ERRORS: tuple[type[PipelineError], ...] = (
    ValidationError,
    EncodingError,
    PipelineCancelledError,
)

__all__ = [
    "EncodingError",
    "FATAL_ERRORS",
    "PipelineCancelledError",
    "PipelineError",
    "RenderError",
    "ResourceError",
    "ValidationError",
]
