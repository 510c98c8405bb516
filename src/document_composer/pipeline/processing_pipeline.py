# SPDX-License-Identifier: Apache-2.0
"""Processing pipeline implementation.

Runs a single request through a linear state machine::

    preparing(10) -> rendering(30) -> generating(80) -> complete(100)

with a terminal ``error(0)`` state reachable from any stage.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from document_composer.core.encoder import Encoder
from document_composer.core.layout_composer import LayoutComposer
from document_composer.core.models import (
    BlockKind,
    Document,
    LayoutElement,
    LetterheadSpec,
    OutputFormat,
    PixelBuffer,
    QualityTier,
    SignatureSpec,
)
from document_composer.core.rasterizer import Rasterizer
from document_composer.output.export_artifact import ExportArtifact, build_filename
from document_composer.pipeline.errors import (
    FATAL_ERRORS,
    EncodingError,
    PipelineCancelledError,
    PipelineError,
    ValidationError,
)
from document_composer.pipeline.progress import ProgressCallback, ProgressEvent, ProgressStage

logger = logging.getLogger(__name__)

T = TypeVar("T")

SignatureTransform = Callable[[bytes], bytes]

MAX_FILE_SIZE = 10 * 1024 * 1024

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/png",
        "image/gif",
    }
)

STAGE_MESSAGES: dict[ProgressStage, str] = {
    ProgressStage.PREPARING: "Preparing document...",
    ProgressStage.RENDERING: "Rendering document...",
    ProgressStage.GENERATING: "Generating final document...",
    ProgressStage.COMPLETE: "Document processing complete!",
    ProgressStage.ERROR: "Failed to process document",
}

# Block kind -> filename feature tag
FEATURE_TAG_BY_KIND: dict[BlockKind, str] = {
    BlockKind.HEADER: "letterhead",
    BlockKind.SIGNATURE: "signature",
}


@dataclass
class PipelineConfig:
    """Processing pipeline configuration."""

    max_file_size: int = MAX_FILE_SIZE
    supported_mime_types: frozenset[str] = SUPPORTED_MIME_TYPES
    validate_mime_type: bool = True

    # Reject requests where neither overlay produces a block
    require_overlay: bool = True

    # Run CPU-bound stages in a worker thread
    offload: bool = True

    # If set, the artifact is also written here
    output_dir: Optional[Path] = None


@dataclass
class ProcessingRequest:
    """Request supplied by the collaborator UI.

    ``output_format`` and ``quality`` accept enum members or their string
    values.
    """

    document: Optional[Document]
    letterhead: Optional[LetterheadSpec] = None
    signature: Optional[SignatureSpec] = None
    output_format: Union[OutputFormat, str] = OutputFormat.PDF
    quality: Union[QualityTier, str] = QualityTier.MEDIUM


class CancellationToken:
    """Cooperative cancellation flag checked between stages."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, stage: str) -> None:
        if self._cancelled:
            raise PipelineCancelledError("Processing was cancelled", stage=stage)


@dataclass
class _RunState:
    """Intermediate values for one run. Never shared between runs."""

    document: Document
    output_format: OutputFormat
    quality: QualityTier
    layout: list[LayoutElement] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ProcessingPipeline:
    """Compose, rasterize and encode one request.

    A pipeline instance processes exactly one request.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        signature_transform: SignatureTransform | None = None,
        clock: Callable[[], datetime] | None = None,
        composer: LayoutComposer | None = None,
        rasterizer: Rasterizer | None = None,
        encoder: Encoder | None = None,
    ) -> None:
        """Initialize ProcessingPipeline.

        Args:
            config: Pipeline configuration.
            progress_callback: Receives one event per stage transition.
            signature_transform: Optional image transform (e.g. background
                removal) applied to image-style signatures.
            clock: Timestamp source for the artifact and filename.
            composer: Layout composer override.
            rasterizer: Rasterizer override.
            encoder: Encoder override.
        """
        self._config = config or PipelineConfig()
        self._progress_callback = progress_callback
        self._signature_transform = signature_transform
        self._clock = clock or datetime.now
        self._composer = composer or LayoutComposer()
        self._rasterizer = rasterizer or Rasterizer()
        self._encoder = encoder or Encoder()
        self._stage: ProgressStage | None = None
        self._started = False

    @property
    def stage(self) -> ProgressStage | None:
        """Current state; None before the run starts."""
        return self._stage

    async def process(
        self,
        request: ProcessingRequest,
        cancel_token: CancellationToken | None = None,
    ) -> ExportArtifact:
        """Run the request through every stage.

        Args:
            request: Processing request.
            cancel_token: Optional token checked between stages.

        Returns:
            ExportArtifact owned by the caller.

        Raises:
            PipelineError: ValidationError, EncodingError,
                PipelineCancelledError, or a PipelineError wrapping an
                unexpected failure. The ``error`` event is emitted first.
            RuntimeError: If the instance was already used.
        """
        if self._started:
            raise RuntimeError("ProcessingPipeline instances process exactly one request")
        self._started = True
        token = cancel_token or CancellationToken()

        try:
            self._enter(ProgressStage.PREPARING)
            token.raise_if_cancelled(ProgressStage.PREPARING.value)
            state = self._stage_prepare(request)

            token.raise_if_cancelled(ProgressStage.RENDERING.value)
            self._enter(ProgressStage.RENDERING)
            buffer = await self._stage_render(state)

            token.raise_if_cancelled(ProgressStage.GENERATING.value)
            self._enter(ProgressStage.GENERATING)
            artifact = await self._stage_generate(state, buffer)
            self._enter(ProgressStage.COMPLETE)
        except PipelineError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            stage = self._stage.value if self._stage else ProgressStage.PREPARING.value
            error = PipelineError("Unexpected processing failure", stage=stage, cause=exc)
            self._fail(error)
            raise error from exc

        logger.info("Processed %s -> %s (%d bytes)", state.document.name, artifact.filename, artifact.byte_size)
        return artifact

    def process_sync(
        self,
        request: ProcessingRequest,
        cancel_token: CancellationToken | None = None,
    ) -> ExportArtifact:
        """Blocking wrapper around :meth:`process`."""
        return asyncio.run(self.process(request, cancel_token))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _stage_prepare(self, request: ProcessingRequest) -> _RunState:
        if request is None or request.document is None:
            raise ValidationError("Request has no document")
        document = request.document

        try:
            output_format = OutputFormat(request.output_format)
            quality = QualityTier(request.quality)
        except ValueError as exc:
            raise ValidationError(str(exc), cause=exc) from exc

        if document.size > self._config.max_file_size:
            raise ValidationError(
                f"Document '{document.name}' is {document.size} bytes; "
                f"limit is {self._config.max_file_size}"
            )
        if self._config.validate_mime_type and document.mime_type not in self._config.supported_mime_types:
            raise ValidationError(f"Unsupported document type: {document.mime_type}")

        signature = self._apply_signature_transform(request.signature)

        layout = self._composer.compose(document, request.letterhead, signature)
        tags = [FEATURE_TAG_BY_KIND[e.kind] for e in layout if e.kind in FEATURE_TAG_BY_KIND]
        if self._config.require_overlay and not tags:
            raise ValidationError("Neither letterhead nor signature produces a renderable block")

        logger.info("Prepared %s with %d blocks (%s)", document.name, len(layout), ", ".join(tags) or "no overlays")
        return _RunState(
            document=document,
            output_format=output_format,
            quality=quality,
            layout=layout,
            tags=tags,
        )

    def _apply_signature_transform(self, signature: SignatureSpec | None) -> SignatureSpec | None:
        image = signature.image if signature is not None and signature.uses_image else None
        if signature is None or image is None or self._signature_transform is None:
            return signature
        try:
            processed = self._signature_transform(image.data)
        except Exception as exc:
            raise ValidationError("Signature image transform failed", cause=exc) from exc
        return dataclasses.replace(
            signature, image=dataclasses.replace(image, data=processed)
        )

    async def _stage_render(self, state: _RunState) -> PixelBuffer:
        resolved = await self._rasterizer.resolve_images_async(state.layout)
        try:
            buffer = await self._run(
                self._rasterizer.render, state.layout, state.quality, resolved
            )
        finally:
            resolved.close()
        state.warnings.extend(str(err) for err in buffer.render_errors)
        return buffer

    async def _stage_generate(self, state: _RunState, buffer: PixelBuffer) -> ExportArtifact:
        data = await self._run(
            self._encoder.encode, buffer, state.output_format, state.quality
        )
        if not data:
            raise EncodingError("Encoder produced no output")

        processed_at = self._clock()
        artifact = ExportArtifact(
            filename=build_filename(state.document.name, state.tags, state.output_format, processed_at),
            format=state.output_format,
            data=bytes(data),
            processed_at=processed_at,
            warnings=tuple(state.warnings),
        )
        if self._config.output_dir is not None:
            path = await self._run(artifact.save, self._config.output_dir)
            logger.info("Saved %s", path)
        return artifact

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        if self._config.offload:
            return await asyncio.to_thread(func, *args)
        return func(*args)

    def _enter(self, stage: ProgressStage) -> None:
        self._stage = stage
        self._notify(ProgressEvent(stage=stage, progress=stage.progress, message=STAGE_MESSAGES[stage]))

    def _fail(self, exc: PipelineError) -> None:
        level = logging.WARNING if isinstance(exc, FATAL_ERRORS) else logging.ERROR
        logger.log(level, "Processing failed: %s", exc)
        self._stage = ProgressStage.ERROR
        event = ProgressEvent(
            stage=ProgressStage.ERROR,
            progress=ProgressStage.ERROR.progress,
            message=STAGE_MESSAGES[ProgressStage.ERROR],
            error=str(exc),
        )
        try:
            self._notify(event)
        except Exception:
            # The run's own error is the one re-raised
            logger.exception("Progress callback failed on the error event")

    def _notify(self, event: ProgressEvent) -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(event)
