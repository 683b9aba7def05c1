"""
Host capabilities used by the capture pipeline.

The pipeline never talks to the screen, the clipboard or the file system
directly. It is handed objects implementing the protocols below; the
desktop client passes the mss / Qt / filesystem implementations, tests
pass fakes.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

import mss
import mss.exception
from PIL import Image

logger = logging.getLogger(__name__)


class ScreenCaptureError(Exception):
    """Screen sharing could not be started or continued."""
    pass


class ScreenCapturePermissionError(ScreenCaptureError):
    """The user or the platform refused the share request."""
    pass


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class VideoStream(Protocol):
    """A live video stream (no audio) owned by one pipeline."""

    @property
    def active(self) -> bool: ...

    @property
    def native_size(self) -> Tuple[int, int]: ...

    def read_frame(self) -> Optional[Image.Image]:
        """Current frame at native resolution, None once the stream has ended."""
        ...

    def on_ended(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the stream ends for any reason."""
        ...

    def stop(self) -> None:
        """Release the stream. Safe to call more than once."""
        ...


class ScreenCaptureSource(Protocol):
    def request_stream(self) -> VideoStream:
        """Ask the host for a stream.

        Raises:
            ScreenCapturePermissionError: If the request is refused or cancelled.
            ScreenCaptureError: If the platform cannot capture.
        """
        ...


class VideoSink(Protocol):
    """Where the live stream is displayed."""

    def attach(self, stream: VideoStream) -> None: ...

    def detach(self) -> None: ...

    @property
    def display_size(self) -> Tuple[float, float]:
        """Rendered size of the video in display pixels."""
        ...


class FileDownloader(Protocol):
    def save(self, filename: str, payload: bytes) -> Path: ...


class ClipboardSink(Protocol):
    def copy_image(self, image: Image.Image) -> None: ...


# ---------------------------------------------------------------------------
# mss implementation
# ---------------------------------------------------------------------------

# Chooser gets the monitor list (index 0 is the whole virtual screen) and
# returns the chosen index, or None if the user cancelled.
MonitorChooser = Callable[[List[dict]], Optional[int]]


class MssVideoStream:
    """Live view of one monitor, grabbed with mss on demand."""

    def __init__(self, sct, monitor: dict):
        self._sct = sct
        self._monitor = dict(monitor)
        self._active = True
        self._ended_callbacks: List[Callable[[], None]] = []

    @property
    def active(self) -> bool:
        return self._active

    @property
    def native_size(self) -> Tuple[int, int]:
        return self._monitor["width"], self._monitor["height"]

    def read_frame(self) -> Optional[Image.Image]:
        if not self._active:
            return None
        try:
            shot = self._sct.grab(self._monitor)
        except mss.exception.ScreenShotError as e:
            # The monitor went away or the session was locked
            logger.warning(f"Screen grab failed, ending stream: {e}")
            self.stop()
            return None
        return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended_callbacks.append(callback)

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self._sct.close()
        except Exception as e:
            logger.debug(f"Error closing mss handle: {e}")
        callbacks, self._ended_callbacks = self._ended_callbacks, []
        for callback in callbacks:
            callback()


class MssScreenCaptureSource:
    """ScreenCaptureSource backed by mss.

    Args:
        chooser: Picks which monitor to share. Defaults to the primary
            monitor (index 1) when there is one.
    """

    def __init__(self, chooser: Optional[MonitorChooser] = None):
        self.chooser = chooser

    def request_stream(self) -> MssVideoStream:
        try:
            sct = mss.mss()
        except mss.exception.ScreenShotError as e:
            raise ScreenCaptureError(f"Screen capture is not available: {e}") from e

        monitors = [dict(m) for m in sct.monitors]
        if self.chooser is not None:
            index = self.chooser(monitors)
        else:
            index = 1 if len(monitors) > 1 else 0

        if index is None:
            sct.close()
            raise ScreenCapturePermissionError("Screen sharing was cancelled.")
        if not 0 <= index < len(monitors):
            sct.close()
            raise ScreenCaptureError(f"No monitor with index {index}.")

        monitor = monitors[index]
        logger.info(f"Sharing monitor {index} ({monitor['width']}x{monitor['height']})")
        return MssVideoStream(sct, monitor)


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


class LocalFileDownloader:
    """Writes downloads into a directory, creating it when needed."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def save(self, filename: str, payload: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(payload)
        logger.info(f"Saved {len(payload)} bytes to {path}")
        return path
