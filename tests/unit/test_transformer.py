"""Unit tests for the Pillow stage builder and transformers."""

import io

import pytest
from PIL import Image

from image_storage_engine.core import stages as st
from image_storage_engine.core.exceptions import TransformError
from image_storage_engine.core.transformer import (
    PassthroughTransformer,
    PillowStageBuilder,
    PillowTransformer,
)
from image_storage_engine.testing.fakes import create_test_image


def run(transformer, data: bytes):
    sink = io.BytesIO()
    info = transformer.run(io.BytesIO(data), sink)
    return info, sink.getvalue()


class TestPillowStageBuilder:
    """Tests for PillowStageBuilder."""

    def test_empty_builder_is_passthrough(self):
        assert isinstance(PillowStageBuilder().finalize(), PassthroughTransformer)

    def test_append_is_chainable(self):
        builder = PillowStageBuilder()

        transformer = builder.append(st.Flip()).append(st.Flop()).finalize()

        assert isinstance(transformer, PillowTransformer)
        assert transformer.stages == [st.Flip(), st.Flop()]


class TestPassthroughTransformer:
    """Tests for PassthroughTransformer."""

    def test_output_equals_input(self):
        data = create_test_image(120, 80)

        info, output = run(PassthroughTransformer(), data)

        assert output == data
        assert info is None

    def test_non_image_bytes_pass_unchanged(self):
        data = b"\x00" * 200_000

        _, output = run(PassthroughTransformer(), data)

        assert output == data


class TestPillowTransformer:
    """Tests for PillowTransformer."""

    def test_format_conversion_to_jpeg(self):
        data = create_test_image(100, 60, fmt="PNG")

        info, output = run(PillowTransformer([st.ToFormat("jpeg")]), data)

        assert output.startswith(b"\xff\xd8\xff")
        assert info.format == "jpeg"
        assert (info.width, info.height) == (100, 60)
        assert info.channels == 3
        assert info.size == len(output)

    def test_source_format_kept_without_format_stage(self):
        data = create_test_image(40, 40, fmt="PNG")

        info, output = run(PillowTransformer([st.Flip()]), data)

        assert output.startswith(b"\x89PNG")
        assert info.format == "png"

    def test_resize_keeps_aspect_ratio_with_one_side(self):
        data = create_test_image(100, 50)

        info, output = run(PillowTransformer([st.Resize(50, None)]), data)

        assert (info.width, info.height) == (50, 25)
        assert Image.open(io.BytesIO(output)).size == (50, 25)

    def test_resize_with_modifier_elsewhere_in_pipeline(self):
        data = create_test_image(100, 50)

        info, _ = run(PillowTransformer([st.Resize(40, 40), st.Max()]), data)

        assert (info.width, info.height) == (40, 20)

    def test_format_options_are_passed_to_encoder(self):
        data = create_test_image(200, 200)

        _, low = run(PillowTransformer([st.ToFormat("jpeg", {"quality": 5})]), data)
        _, high = run(PillowTransformer([st.ToFormat("jpeg", {"quality": 95})]), data)

        assert len(low) < len(high)

    def test_tiff_output_is_spooled(self):
        data = create_test_image(30, 30)

        info, output = run(PillowTransformer([st.ToFormat("tiff")]), data)

        assert output[:4] in (b"II*\x00", b"MM\x00*")
        assert info.size == len(output)

    def test_rgba_to_jpeg_drops_alpha(self):
        data = create_test_image(20, 20, mode="RGBA")

        info, output = run(PillowTransformer([st.ToFormat("jpg")]), data)

        assert Image.open(io.BytesIO(output)).mode == "RGB"
        assert info.channels == 3

    def test_metadata_dropped_by_default_and_kept_on_request(self):
        image = Image.new("RGB", (10, 10), "red")
        exif = Image.Exif()
        exif[0x010F] = "TestCamera"
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", exif=exif.tobytes())
        data = buffer.getvalue()

        _, stripped = run(PillowTransformer([st.Flip()]), data)
        _, kept = run(PillowTransformer([st.Flip(), st.WithMetadata()]), data)

        assert 0x010F not in Image.open(io.BytesIO(stripped)).getexif()
        assert Image.open(io.BytesIO(kept)).getexif()[0x010F] == "TestCamera"

    def test_invalid_image_raises_transform_error(self):
        with pytest.raises(TransformError):
            run(PillowTransformer([st.Flip()]), b"not an image")

    def test_unknown_format_raises_transform_error(self):
        with pytest.raises(TransformError, match="Unsupported output format"):
            run(PillowTransformer([st.ToFormat("bmpx")]), create_test_image(10, 10))

    def test_bad_stage_parameters_raise_transform_error(self):
        stage = st.Extract(left=0, top=0, width=500, height=500)

        with pytest.raises(TransformError, match="outside"):
            run(PillowTransformer([stage]), create_test_image(10, 10))

    def test_sink_errors_are_not_swallowed(self):
        class BrokenSink:
            def write(self, data):
                raise ConnectionError("socket closed")

            def flush(self):
                pass

        with pytest.raises((ConnectionError, TransformError)):
            PillowTransformer([st.Flip()]).run(
                io.BytesIO(create_test_image(10, 10)), BrokenSink()
            )
