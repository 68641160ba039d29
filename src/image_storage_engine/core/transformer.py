"""Pillow-backed transform stage builder."""

import shutil
import tempfile
from typing import Any, BinaryIO, List, Optional

from PIL import Image

from . import stages as st
from .exceptions import TransformError
from .image_utils import (
    apply_stage,
    metadata_save_args,
    pillow_format,
    prepare_for_format,
    resize_settings,
)
from .models import TransformInfo

CHUNK_SIZE = 64 * 1024
# Encoders that seek in their output; they are spooled before copying.
SEEKING_ENCODERS = {"TIFF"}
SPOOL_MAX_SIZE = 8 * 1024 * 1024


class _CountingWriter:
    """Write-through wrapper that counts bytes handed to the sink."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self.bytes_written += len(data)
        return len(data)

    def flush(self) -> None:
        self._sink.flush()


class PassthroughTransformer:
    """Copies the source to the sink unchanged, in fixed-size chunks."""

    def run(self, source: BinaryIO, sink: BinaryIO) -> Optional[TransformInfo]:
        shutil.copyfileobj(source, sink, CHUNK_SIZE)
        return None


class PillowTransformer:
    """Decodes the source with Pillow, applies the stages and encodes into the sink."""

    def __init__(self, stages: List[Any]):
        self._stages = list(stages)
        self._settings = resize_settings(self._stages)
        self._output: Optional[st.ToFormat] = None
        self._metadata: Optional[st.WithMetadata] = None
        for stage in self._stages:
            if isinstance(stage, st.ToFormat):
                self._output = stage
            elif isinstance(stage, st.WithMetadata):
                self._metadata = stage

    @property
    def stages(self) -> List[Any]:
        return list(self._stages)

    def run(self, source: BinaryIO, sink: BinaryIO) -> Optional[TransformInfo]:
        try:
            original = Image.open(source)
            original.load()
            source_format = original.format or "PNG"

            image = original
            for stage in self._stages:
                image = apply_stage(image, stage, self._settings)

            if self._output is not None:
                encoder = pillow_format(self._output.format)
                save_args = dict(self._output.options)
            else:
                encoder = source_format
                save_args = {}
            if self._metadata is not None:
                save_args.update(metadata_save_args(original, self._metadata.options))

            image = prepare_for_format(image, encoder)
        except (
            OSError,
            ValueError,
            TypeError,
            SyntaxError,
            Image.DecompressionBombError,
        ) as exc:
            raise TransformError(f"Image transform failed: {exc}") from exc

        writer = _CountingWriter(sink)
        self._encode(image, writer, encoder, save_args)

        return TransformInfo(
            format=encoder.lower(),
            width=image.width,
            height=image.height,
            channels=len(image.getbands()),
            size=writer.bytes_written,
        )

    def _encode(
        self, image: Image.Image, writer: _CountingWriter, encoder: str, save_args: dict
    ) -> None:
        if encoder in SEEKING_ENCODERS:
            with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as spool:
                self._save(image, spool, encoder, save_args)
                spool.seek(0)
                shutil.copyfileobj(spool, writer, CHUNK_SIZE)
        else:
            self._save(image, writer, encoder, save_args)

    @staticmethod
    def _save(image: Image.Image, target: Any, encoder: str, save_args: dict) -> None:
        try:
            image.save(target, format=encoder, **save_args)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise TransformError(f"Encoding {encoder} failed: {exc}") from exc


class PillowStageBuilder:
    """Collects stages and finalizes them into a transformer.

    A builder with no stages yields a passthrough transformer, so the stored
    object is byte-for-byte the uploaded file.
    """

    def __init__(self) -> None:
        self._stages: List[Any] = []

    def append(self, stage: Any) -> "PillowStageBuilder":
        self._stages.append(stage)
        return self

    def finalize(self):
        if not self._stages:
            return PassthroughTransformer()
        return PillowTransformer(self._stages)
