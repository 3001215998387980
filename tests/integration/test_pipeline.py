"""Integration tests for the complete pipeline."""

import io
import os

import pytest
from PIL import Image

from thumbnail_pipeline.core.factories import ThumbnailPipelineFactory
from thumbnail_pipeline.core.models import PipelineConfig
from thumbnail_pipeline.testing.fakes import (
    FakeLogger,
    create_test_image,
    setup_test_s3_environment,
)


def _event(*keys, bucket="test-uploads"):
    return {
        "Records": [
            {
                "eventSource": "aws:s3",
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
            }
            for key in keys
        ]
    }


class TestPipelineIntegration:
    """Integration tests for the complete thumbnail pipeline."""

    @pytest.fixture
    def fake_s3(self):
        return setup_test_s3_environment()

    @pytest.fixture
    def logger(self):
        return FakeLogger()

    @pytest.fixture
    def pipeline(self, fake_s3, logger, tmp_path):
        config = PipelineConfig(sizes=(200, 400), scratch_dir=str(tmp_path))
        return ThumbnailPipelineFactory.create_pipeline(
            s3_client=fake_s3, logger=logger, config=config
        )

    def test_end_to_end_png(self, pipeline, fake_s3, tmp_path):
        """Test the documented example from event to stored thumbnails."""
        count = pipeline.process_event(_event("image/png/ea/eg/ad/photo.png"))

        assert count == 1
        bucket = fake_s3.get_bucket("test-uploads")
        assert bucket.list_keys("thumb/") == [
            "thumb/200/ea/eg/ad/photo.png",
            "thumb/400/ea/eg/ad/photo.png",
        ]

        for size in (200, 400):
            stored = bucket.get_object(f"thumb/{size}/ea/eg/ad/photo.png")
            assert stored.content_type == "image/png"
            with Image.open(io.BytesIO(stored.body)) as thumb:
                assert thumb.format == "PNG"
                assert thumb.size == (size, size)
                # 300x150 source: fitted area on top, transparent below
                rgba = thumb.convert("RGBA")
                assert rgba.getpixel((size - 1, size - 1))[3] == 0
                assert rgba.getpixel((size // 2, 5))[3] == 255

        # nothing left behind in the scratch directory
        leftovers = [files for _, _, files in os.walk(tmp_path) if files]
        assert leftovers == []

    def test_end_to_end_jpeg_and_gif(self, pipeline, fake_s3):
        """Test that JPEG and GIF sources keep their formats."""
        pipeline.process_event(
            _event("image/jpeg/ab/portrait.jpg", "image/gif/cd/small.gif")
        )

        bucket = fake_s3.get_bucket("test-uploads")
        with Image.open(io.BytesIO(bucket.get_object("thumb/400/ab/portrait.jpg").body)) as jpg:
            assert (jpg.format, jpg.size) == ("JPEG", (400, 400))
        with Image.open(io.BytesIO(bucket.get_object("thumb/200/cd/small.gif").body)) as gif:
            assert (gif.format, gif.size) == ("GIF", (200, 200))

    def test_idempotent_reprocessing(self, pipeline, fake_s3):
        """Test that processing the same event twice overwrites identical objects."""
        event = _event("image/png/ea/eg/ad/photo.png")
        bucket = fake_s3.get_bucket("test-uploads")

        pipeline.process_event(event)
        first = {key: bucket.get_object(key).body for key in bucket.list_keys("thumb/")}
        pipeline.process_event(event)
        second = {key: bucket.get_object(key).body for key in bucket.list_keys("thumb/")}

        assert first == second
        assert len(second) == 2

    def test_fetch_failure_and_success_in_one_batch(self, pipeline, fake_s3):
        """Test that one failed record does not affect the other."""
        count = pipeline.process_event(
            _event("image/png/ea/eg/ad/missing.png", "image/png/ea/eg/ad/photo.png")
        )

        assert count == 2
        assert fake_s3.get_bucket("test-uploads").list_keys("thumb/") == [
            "thumb/200/ea/eg/ad/photo.png",
            "thumb/400/ea/eg/ad/photo.png",
        ]

    def test_flat_key_stores_nothing(self, pipeline, fake_s3, logger):
        """Test that a single-segment key fails derivation for every size."""
        count = pipeline.process_event(_event("flatfile.jpg"))

        assert count == 1
        assert fake_s3.put_calls == []
        key_errors = [
            log for log in logger.get_logs("ERROR") if log.get("error_type") == "InvalidKeyError"
        ]
        assert len(key_errors) == 2

    def test_key_matching_earlier_scratch_directory(self, pipeline, fake_s3, logger):
        """Test that a key equal to the parent path of an earlier key still processes."""
        bucket = fake_s3.get_bucket("test-uploads")
        png = create_test_image(30, 30, format="PNG")
        bucket.add_object("image/png/c/d.png", png, "image/png")
        bucket.add_object("image/png/c", png, "image/png")

        pipeline.process_event(_event("image/png/c/d.png"))
        pipeline.process_event(_event("image/png/c"))

        assert logger.get_logs("ERROR") == []
        assert bucket.list_keys("thumb/200/") == ["thumb/200/c", "thumb/200/c/d.png"]

    def test_stored_thumbnail_events_ignored(self, pipeline, fake_s3):
        """Test that events for stored thumbnails do not write again."""
        pipeline.process_event(_event("image/png/ea/eg/ad/photo.png"))
        writes = len(fake_s3.put_calls)

        count = pipeline.process_event(
            _event("thumb/200/ea/eg/ad/photo.png", "thumb/400/ea/eg/ad/photo.png")
        )

        assert count == 2
        assert len(fake_s3.put_calls) == writes

    def test_all_records_failing_still_counted(self, pipeline, fake_s3):
        """Test that the count is returned even when every record fails."""
        fake_s3.set_failure_mode(True, "Service unavailable")

        count = pipeline.process_event(
            _event("image/png/ea/eg/ad/photo.png", "image/jpeg/ab/portrait.jpg")
        )

        assert count == 2
        assert fake_s3.put_calls == []
