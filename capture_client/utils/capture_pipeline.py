"""
Capture pipeline: screen sharing, region selection and still capture.

States::

    idle --start_sharing--> sharing --begin_selection--> selecting
    selecting --end_selection--> selected | sharing (degenerate drag)
    any --stop_sharing / stream ended--> idle

The last captured frame is kept independently of the sharing state and
is only replaced by the next capture or dropped by discard_frame().
"""

import enum
import io
import logging
import time
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from .capabilities import (
    ClipboardSink,
    FileDownloader,
    ScreenCaptureError,
    ScreenCaptureSource,
    VideoSink,
    VideoStream,
)
from .geometry import Bounds, Point, SelectionRect, to_source_region

logger = logging.getLogger(__name__)

DEFAULT_MIN_SELECTION_PX = 5
SHARE_FAILED_MESSAGE = "Could not start screen sharing. Check the capture permissions."
EMPTY_REGION_MESSAGE = "The selection is too small to capture at the stream's resolution."


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    SHARING = "sharing"
    SELECTING = "selecting"
    SELECTED = "selected"


@dataclass(frozen=True)
class CaptureFrame:
    """A still image produced by capture()."""

    image: Image.Image
    payload: bytes
    captured_at_ms: int

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class CapturePipeline:
    """Owns one live stream at a time and turns it into still images.

    Args:
        source: Provides streams on request.
        sink: Displays the live stream and reports its rendered size.
        downloader: Receives PNG payloads on download().
        clipboard: Optional target for copy_to_clipboard().
        min_selection_px: Drags with a side at or below this are discarded.
        filename_prefix: Prefix of downloaded file names.
    """

    def __init__(
        self,
        source: ScreenCaptureSource,
        sink: VideoSink,
        downloader: FileDownloader,
        clipboard: Optional[ClipboardSink] = None,
        min_selection_px: float = DEFAULT_MIN_SELECTION_PX,
        filename_prefix: str = "capture",
    ):
        self.source = source
        self.sink = sink
        self.downloader = downloader
        self.clipboard = clipboard
        self.min_selection_px = min_selection_px
        self.filename_prefix = filename_prefix

        self.error: Optional[str] = None
        self.selection: Optional[SelectionRect] = None
        self.frame: Optional[CaptureFrame] = None

        self._stream: Optional[VideoStream] = None
        self._anchor: Optional[Point] = None
        self._corner: Optional[Point] = None

    # -- state ------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        if self._stream is None:
            return PipelineState.IDLE
        if self._anchor is not None:
            return PipelineState.SELECTING
        if self.selection is not None:
            return PipelineState.SELECTED
        return PipelineState.SHARING

    @property
    def is_sharing(self) -> bool:
        return self._stream is not None

    @property
    def drag_rect(self) -> Optional[SelectionRect]:
        """Rectangle of the drag in progress, for drawing the rubber band."""
        if self._anchor is None or self._corner is None:
            return None
        return SelectionRect.from_corners(self._anchor, self._corner)

    # -- sharing ----------------------------------------------------------

    def start_sharing(self) -> bool:
        """Request a stream from the source and start displaying it.

        Returns:
            True if sharing started. On refusal the reason is left in
            ``error`` and the pipeline stays idle.
        """
        if self._stream is not None:
            logger.warning("start_sharing ignored: a stream is already active")
            return False

        self.error = None
        try:
            stream = self.source.request_stream()
        except ScreenCaptureError as e:
            logger.warning(f"Screen sharing refused: {e}")
            self.error = str(e) or SHARE_FAILED_MESSAGE
            return False

        self._stream = stream
        stream.on_ended(lambda: self._on_stream_ended(stream))
        self.sink.attach(stream)
        logger.info("Screen sharing started (%dx%d)", *stream.native_size)
        return True

    def stop_sharing(self) -> None:
        """Release the stream, detach the sink and clear any selection. Idempotent."""
        stream, self._stream = self._stream, None
        self._anchor = None
        self._corner = None
        self.selection = None
        if stream is None:
            return
        self.sink.detach()
        stream.stop()
        logger.info("Screen sharing stopped")

    def _on_stream_ended(self, stream: VideoStream) -> None:
        # Ignore late notifications from a stream we already let go of
        if stream is self._stream:
            logger.info("Stream ended by the host")
            self.stop_sharing()

    # -- selection --------------------------------------------------------

    def begin_selection(self, pointer: Point, bounds: Bounds) -> bool:
        """Anchor a new drag at the pointer. Only valid while sharing."""
        if self._stream is None:
            return False
        local = bounds.to_local(pointer)
        self._anchor = local
        self._corner = local
        self.selection = None
        return True

    def update_selection(self, pointer: Point, bounds: Bounds) -> bool:
        """Move the drag's opposite corner, clamped to the container."""
        if self._anchor is None:
            return False
        self._corner = bounds.to_local(pointer)
        return True

    def end_selection(self) -> Optional[SelectionRect]:
        """Finish the drag.

        Returns:
            The retained selection, or None when the drag was too small
            (which also clears any earlier selection).
        """
        if self._anchor is None:
            return self.selection
        rect = SelectionRect.from_corners(self._anchor, self._corner)
        self._anchor = None
        self._corner = None
        self.selection = None if rect.is_degenerate(self.min_selection_px) else rect
        return self.selection

    def clear_selection(self) -> None:
        self.selection = None

    # -- capture ----------------------------------------------------------

    def capture(self) -> Optional[CaptureFrame]:
        """Rasterize the selection, or the whole frame, into a new CaptureFrame.

        Only valid while sharing; otherwise nothing is captured and None
        is returned. The stream itself is not affected.
        """
        stream = self._stream
        if stream is None:
            logger.warning("capture ignored: not sharing")
            return None

        image = stream.read_frame()
        if image is None:
            return None

        native_size = image.size
        region = to_source_region(self.selection, native_size, self.sink.display_size)
        if self.selection is not None:
            if region.width == 0 or region.height == 0:
                logger.warning(f"capture ignored: selection maps to {region.width}x{region.height} source pixels")
                self.error = EMPTY_REGION_MESSAGE
                return None
            image = image.crop(region.box)
        else:
            image = image.copy()

        self.error = None

        self.frame = CaptureFrame(
            image=image,
            payload=encode_png(image),
            captured_at_ms=int(time.time() * 1000),
        )
        logger.info(f"Captured {image.width}x{image.height} from {native_size[0]}x{native_size[1]}")
        return self.frame

    def download(self) -> None:
        """Hand the current frame to the downloader as capture_<epoch-millis>.png."""
        if self.frame is None:
            return
        filename = f"{self.filename_prefix}_{self.frame.captured_at_ms}.png"
        self.downloader.save(filename, self.frame.payload)

    def copy_to_clipboard(self) -> bool:
        if self.frame is None or self.clipboard is None:
            return False
        self.clipboard.copy_image(self.frame.image)
        return True

    def discard_frame(self) -> None:
        self.frame = None
