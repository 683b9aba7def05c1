"""
Tests for the capture pipeline using fake host capabilities.
"""

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from capture_client.utils.capabilities import ScreenCaptureError, ScreenCapturePermissionError
from capture_client.utils.capture_pipeline import CapturePipeline, PipelineState
from capture_client.utils.geometry import Bounds, Point, SelectionRect


class FakeStream:
    def __init__(self, size=(1920, 1080)):
        self.size = size
        self.active = True
        self.stop_calls = 0
        self._callbacks = []
        # Left half red, right half blue, so crops are recognisable
        self.image = Image.new("RGB", size, (255, 0, 0))
        self.image.paste((0, 0, 255), (size[0] // 2, 0, size[0], size[1]))

    @property
    def native_size(self):
        return self.size

    def read_frame(self):
        return self.image if self.active else None

    def on_ended(self, callback):
        self._callbacks.append(callback)

    def stop(self):
        self.stop_calls += 1
        if not self.active:
            return
        self.active = False
        for callback in self._callbacks:
            callback()

    def end_from_host(self):
        """Simulate the user ending the share from outside the app."""
        self.stop()


class FakeSource:
    def __init__(self, stream=None, error=None):
        self.stream = stream or FakeStream()
        self.error = error
        self.requests = 0

    def request_stream(self):
        self.requests += 1
        if self.error:
            raise self.error
        return self.stream


class FakeSink:
    def __init__(self, display_size=(960, 540)):
        self.display_size = display_size
        self.attached = None
        self.detach_calls = 0

    def attach(self, stream):
        self.attached = stream

    def detach(self):
        self.attached = None
        self.detach_calls += 1


class FakeDownloader:
    def __init__(self):
        self.saved = []

    def save(self, filename, payload):
        self.saved.append((filename, payload))
        return Path(filename)


BOUNDS = Bounds(left=0, top=0, width=960, height=540)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def pipeline(source, sink, downloader):
    return CapturePipeline(source, sink, downloader, clipboard=MagicMock())


def drag(pipeline, start, end, bounds=BOUNDS):
    pipeline.begin_selection(Point(*start), bounds)
    pipeline.update_selection(Point(*end), bounds)
    return pipeline.end_selection()


class TestSharing:
    def test_start_sharing_attaches_stream(self, pipeline, source, sink):
        assert pipeline.start_sharing() is True
        assert pipeline.state == PipelineState.SHARING
        assert sink.attached is source.stream

    def test_refused_share_stays_idle_with_error(self, sink, downloader):
        source = FakeSource(error=ScreenCapturePermissionError("Screen sharing was cancelled."))
        pipeline = CapturePipeline(source, sink, downloader)

        assert pipeline.start_sharing() is False
        assert pipeline.state == PipelineState.IDLE
        assert pipeline.error == "Screen sharing was cancelled."
        assert sink.attached is None

    def test_platform_failure_without_message_gets_generic_error(self, sink, downloader):
        pipeline = CapturePipeline(FakeSource(error=ScreenCaptureError()), sink, downloader)
        assert pipeline.start_sharing() is False
        assert pipeline.error

    def test_error_cleared_on_next_successful_start(self, sink, downloader):
        source = FakeSource(error=ScreenCaptureError("nope"))
        pipeline = CapturePipeline(source, sink, downloader)
        pipeline.start_sharing()
        source.error = None
        assert pipeline.start_sharing() is True
        assert pipeline.error is None

    def test_start_while_sharing_is_refused(self, pipeline, source):
        pipeline.start_sharing()
        assert pipeline.start_sharing() is False
        assert source.requests == 1

    def test_stop_sharing_releases_everything(self, pipeline, source, sink):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))

        pipeline.stop_sharing()

        assert pipeline.state == PipelineState.IDLE
        assert pipeline.selection is None
        assert sink.attached is None
        assert source.stream.active is False

    def test_stop_sharing_twice_is_a_noop(self, pipeline, source, sink):
        pipeline.start_sharing()
        pipeline.stop_sharing()
        pipeline.stop_sharing()

        assert pipeline.state == PipelineState.IDLE
        assert sink.detach_calls == 1
        assert source.stream.stop_calls == 1

    def test_stream_ending_on_its_own_stops_sharing(self, pipeline, source, sink):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))

        source.stream.end_from_host()

        assert pipeline.state == PipelineState.IDLE
        assert pipeline.selection is None
        assert sink.attached is None

    def test_sharing_can_restart_after_stop(self, pipeline, source):
        pipeline.start_sharing()
        pipeline.stop_sharing()
        source.stream = FakeStream()
        assert pipeline.start_sharing() is True


class TestSelection:
    def test_selection_requires_sharing(self, pipeline):
        assert pipeline.begin_selection(Point(10, 10), BOUNDS) is False
        assert pipeline.state == PipelineState.IDLE

    def test_drag_produces_selection(self, pipeline):
        pipeline.start_sharing()
        pipeline.begin_selection(Point(100, 100), BOUNDS)
        assert pipeline.state == PipelineState.SELECTING

        pipeline.update_selection(Point(200, 160), BOUNDS)
        assert pipeline.drag_rect == SelectionRect(100, 100, 100, 60)

        assert pipeline.end_selection() == SelectionRect(100, 100, 100, 60)
        assert pipeline.state == PipelineState.SELECTED

    def test_pointer_is_converted_to_container_coordinates(self, pipeline):
        pipeline.start_sharing()
        bounds = Bounds(left=40, top=30, width=960, height=540)
        rect = drag(pipeline, (140, 130), (240, 190), bounds)
        assert rect == SelectionRect(100, 100, 100, 60)

    def test_drag_is_clamped_to_container(self, pipeline):
        pipeline.start_sharing()
        rect = drag(pipeline, (900, 500), (5000, 5000))
        assert rect == SelectionRect(900, 500, 60, 40)

    def test_tiny_drag_clears_selection(self, pipeline):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))

        assert drag(pipeline, (100, 100), (105, 300)) is None
        assert pipeline.selection is None
        assert pipeline.state == PipelineState.SHARING

    def test_threshold_is_configurable(self, source, sink, downloader):
        pipeline = CapturePipeline(source, sink, downloader, min_selection_px=20)
        pipeline.start_sharing()
        assert drag(pipeline, (0, 0), (20, 100)) is None
        assert drag(pipeline, (0, 0), (21, 100)) is not None

    def test_update_without_drag_is_ignored(self, pipeline):
        pipeline.start_sharing()
        assert pipeline.update_selection(Point(10, 10), BOUNDS) is False
        assert pipeline.drag_rect is None

    def test_clear_selection(self, pipeline):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))
        pipeline.clear_selection()
        assert pipeline.selection is None
        assert pipeline.state == PipelineState.SHARING


class TestCapture:
    def test_capture_scales_selection_to_native_resolution(self, pipeline):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))

        frame = pipeline.capture()

        assert (frame.width, frame.height) == (200, 120)
        decoded = Image.open(io.BytesIO(frame.payload))
        assert decoded.format == "PNG"
        assert decoded.size == (200, 120)

    def test_capture_reads_the_selected_source_pixels(self, pipeline):
        pipeline.start_sharing()
        # Right half of the display maps to the blue half of the source
        drag(pipeline, (600, 100), (700, 200))
        frame = pipeline.capture()
        assert frame.image.getpixel((0, 0)) == (0, 0, 255)

    def test_capture_without_selection_is_full_frame(self, pipeline):
        pipeline.start_sharing()
        frame = pipeline.capture()
        assert (frame.width, frame.height) == (1920, 1080)

    def test_capture_keeps_stream_and_selection(self, pipeline, source):
        pipeline.start_sharing()
        drag(pipeline, (100, 100), (200, 160))
        pipeline.capture()
        assert source.stream.active is True
        assert pipeline.state == PipelineState.SELECTED

    def test_new_capture_replaces_frame(self, pipeline):
        pipeline.start_sharing()
        first = pipeline.capture()
        drag(pipeline, (100, 100), (200, 160))
        second = pipeline.capture()
        assert pipeline.frame is second
        assert pipeline.frame is not first

    def test_capture_after_stop_returns_none_and_keeps_frame(self, pipeline):
        pipeline.start_sharing()
        frame = pipeline.capture()
        pipeline.stop_sharing()

        assert pipeline.capture() is None
        assert pipeline.frame is frame

    def test_selection_smaller_than_one_source_pixel(self, sink, downloader):
        source = FakeSource(FakeStream(size=(100, 100)))
        pipeline = CapturePipeline(source, sink, downloader)
        pipeline.start_sharing()
        previous = pipeline.capture()

        assert drag(pipeline, (10, 10), (17, 17)) == SelectionRect(10, 10, 7, 7)
        assert pipeline.capture() is None
        assert pipeline.error
        assert pipeline.frame is previous
        assert pipeline.state == PipelineState.SELECTED

        pipeline.clear_selection()
        assert pipeline.capture() is not None
        assert pipeline.error is None

    def test_discard_frame(self, pipeline):
        pipeline.start_sharing()
        pipeline.capture()
        pipeline.discard_frame()
        assert pipeline.frame is None


class TestExport:
    def test_download_uses_capture_instant(self, pipeline, downloader):
        pipeline.start_sharing()
        frame = pipeline.capture()

        pipeline.download()

        assert downloader.saved == [(f"capture_{frame.captured_at_ms}.png", frame.payload)]

    def test_download_without_frame_is_noop(self, pipeline, downloader):
        pipeline.download()
        assert downloader.saved == []

    def test_filename_prefix(self, source, sink, downloader):
        pipeline = CapturePipeline(source, sink, downloader, filename_prefix="shot")
        pipeline.start_sharing()
        pipeline.capture()
        pipeline.download()
        assert downloader.saved[0][0].startswith("shot_")

    def test_copy_to_clipboard(self, pipeline):
        pipeline.start_sharing()
        frame = pipeline.capture()
        assert pipeline.copy_to_clipboard() is True
        pipeline.clipboard.copy_image.assert_called_once_with(frame.image)

    def test_copy_without_frame(self, pipeline):
        assert pipeline.copy_to_clipboard() is False
        pipeline.clipboard.copy_image.assert_not_called()
