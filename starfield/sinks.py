"""Frame sinks: where rendered frames go.

Two interchangeable implementations behind one interface:
    - ImageSequenceSink: one numbered still per frame (Pillow, atomic writes)
    - VideoSink: all frames in a single container (OpenCV VideoWriter, FourCC codec)

``make_sink`` picks one from the validated output config.

Errors:
    Any failure to create or write output raises SinkError. The pipeline lets
    it propagate, which aborts the remaining frames; already written files
    are left in place.

Usage:
    with make_sink(cfg.output, fps=25, size=(720, 576)) as sink:
        for index, frame in frames:
            sink.write(frame)
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from starfield.utils import fs

logger = logging.getLogger(__name__)


class SinkError(RuntimeError):
    """Output could not be created or written."""


class FrameSink(ABC):
    """Accepts uint8 RGB frames of a fixed size, in order.

    Parameters
    ----------
    size : tuple
        (width, height) every frame must have
    """

    def __init__(self, size: Tuple[int, int]):
        self.size = (int(size[0]), int(size[1]))
        self.frames_written = 0
        self._opened = False

    def __enter__(self) -> 'FrameSink':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if not self._opened:
            self._open()
            self._opened = True

    def close(self) -> None:
        if self._opened:
            self._opened = False
            self._close()

    def write(self, frame: np.ndarray) -> None:
        """Append one frame.

        Raises
        ------
        SinkError
            Sink not open, wrong frame shape/dtype, or the backend failed
        """
        if not self._opened:
            raise SinkError(f"{type(self).__name__} is not open")
        width, height = self.size
        if frame.shape != (height, width, 3) or frame.dtype != np.uint8:
            raise SinkError(
                f"Expected uint8 frame of shape {(height, width, 3)}, "
                f"got {frame.dtype} {frame.shape}"
            )
        self._write(frame)
        self.frames_written += 1

    @property
    @abstractmethod
    def outputs(self) -> List[Path]:
        """Files produced so far."""

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass

    @abstractmethod
    def _write(self, frame: np.ndarray) -> None:
        ...


class ImageSequenceSink(FrameSink):
    """Writes ``directory / pattern.format(index=n)`` for frame n.

    Parameters
    ----------
    directory : str or Path
        Target directory (created on open)
    size : tuple
        (width, height)
    pattern : str
        Filename pattern with an ``index`` field, default "out{index:04d}.png"
    """

    def __init__(
        self,
        directory: Union[str, Path],
        size: Tuple[int, int],
        pattern: str = "out{index:04d}.png"
    ):
        super().__init__(size)
        self.directory = Path(directory)
        self.pattern = pattern
        self._paths: List[Path] = []

    @property
    def outputs(self) -> List[Path]:
        return list(self._paths)

    def _open(self) -> None:
        try:
            fs.ensure_dir(self.directory)
        except OSError as e:
            raise SinkError(f"Cannot create output directory {self.directory}: {e}") from e

    def _write(self, frame: np.ndarray) -> None:
        path = self.directory / self.pattern.format(index=self.frames_written)
        try:
            fs.atomic_save_image(frame, path)
        except OSError as e:
            raise SinkError(f"Failed to write frame {self.frames_written} to {path}: {e}") from e
        self._paths.append(path)


class VideoSink(FrameSink):
    """Encodes frames into one video file with OpenCV.

    Parameters
    ----------
    path : str or Path
        Video file; the container follows the extension (.mp4, .avi, .mov)
    fps : int
        Playback rate
    size : tuple
        (width, height)
    codec : str
        FourCC code, default "mp4v"
    """

    def __init__(
        self,
        path: Union[str, Path],
        fps: int,
        size: Tuple[int, int],
        codec: str = "mp4v"
    ):
        super().__init__(size)
        if len(codec) != 4:
            raise ValueError(f"Codec must be a 4-character FourCC, got '{codec}'")
        self.path = Path(path)
        self.fps = int(fps)
        self.codec = codec
        self._writer: Optional[cv2.VideoWriter] = None

    @property
    def outputs(self) -> List[Path]:
        return [self.path] if self.frames_written else []

    def _open(self) -> None:
        try:
            fs.ensure_dir(self.path.parent)
        except OSError as e:
            raise SinkError(f"Cannot create output directory {self.path.parent}: {e}") from e

        fourcc = cv2.VideoWriter_fourcc(*self.codec)
        writer = cv2.VideoWriter(str(self.path), fourcc, float(self.fps), self.size)
        if not writer.isOpened():
            writer.release()
            raise SinkError(
                f"Cannot open video writer for {self.path} (codec '{self.codec}', "
                f"{self.size[0]}x{self.size[1]} @ {self.fps} fps)"
            )
        self._writer = writer
        logger.info(f"Encoding video: {self.path} codec={self.codec} fps={self.fps}")

    def _write(self, frame: np.ndarray) -> None:
        # OpenCV expects BGR channel order
        self._writer.write(cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))

    def _close(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None


def make_sink(output_cfg, fps: int, size: Tuple[int, int]) -> FrameSink:
    """Create the sink selected by ``output_cfg.kind``.

    Parameters
    ----------
    output_cfg : OutputConfig
        Validated output section
    fps : int
        Frame rate (video sink)
    size : tuple
        (width, height)

    Returns
    -------
    FrameSink
        Unopened sink
    """
    directory = Path(output_cfg.directory)
    if output_cfg.kind == "images":
        return ImageSequenceSink(directory, size, output_cfg.image_pattern)
    if output_cfg.kind == "video":
        return VideoSink(directory / output_cfg.video_name, fps, size, output_cfg.codec)
    raise ValueError(f"Unknown output kind: {output_cfg.kind}")
