# SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for composition and export.

Only :class:`ValidationError`, :class:`EncodingError` and
:class:`PipelineCancelledError` terminate a pipeline run.
:class:`RenderError` and :class:`ResourceError` are absorbed where they
occur and reported as warnings.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    default_stage = "pipeline"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause is not None:
            text += f" (caused by {type(self.cause).__name__}: {self.cause})"
        return text


class ValidationError(PipelineError):
    """Request is incomplete or has nothing to render. Fatal."""

    default_stage = "preparing"


class RenderError(PipelineError):
    """Embedded image failed to resolve. Non-fatal; the image is omitted."""

    default_stage = "rendering"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        cause: Exception | None = None,
        image_key: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage, cause=cause)
        self.image_key = image_key


class EncodingError(PipelineError):
    """PDF or image serialization failed. Fatal."""

    default_stage = "generating"


class ResourceError(PipelineError):
    """Releasing the temporary render surface failed. Logged only."""

    default_stage = "rendering"


class PipelineCancelledError(PipelineError):
    """Run was cancelled between stages."""
