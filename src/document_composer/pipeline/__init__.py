# SPDX-License-Identifier: Apache-2.0
"""Processing pipeline package."""

from .errors import (
    EncodingError,
    PipelineCancelledError,
    PipelineError,
    RenderError,
    ResourceError,
    ValidationError,
)
from .processing_pipeline import (
    CancellationToken,
    PipelineConfig,
    ProcessingPipeline,
    ProcessingRequest,
    SignatureTransform,
)
from .progress import ProgressCallback, ProgressChannel, ProgressEvent, ProgressStage

__all__ = [
    "CancellationToken",
    "EncodingError",
    "PipelineCancelledError",
    "PipelineConfig",
    "PipelineError",
    "ProcessingPipeline",
    "ProcessingRequest",
    "ProgressCallback",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressStage",
    "RenderError",
    "ResourceError",
    "SignatureTransform",
    "ValidationError",
]
