"""Tests for frame sinks.

Test cases:
    - Image sequence: numbered files, lossless round trip, custom pattern
    - Video: encodes a file with a widely available codec
    - Frame validation (shape, dtype, sink not open)
    - Output failures surface as SinkError
    - make_sink selection from the output config

Run:
    pytest tests/test_sinks.py -v
"""

import numpy as np
import pytest
from PIL import Image

from starfield.sinks import ImageSequenceSink, SinkError, VideoSink, make_sink
from starfield.utils.validators import OutputConfig

SIZE = (16, 12)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def frames():
    """Three distinct 16×12 RGB frames."""
    rng = np.random.default_rng(5)
    return [rng.integers(0, 256, size=(12, 16, 3), dtype=np.uint8) for _ in range(3)]


@pytest.fixture
def blocker(tmp_path):
    """A regular file standing where an output directory should go."""
    path = tmp_path / "blocker"
    path.write_text("not a directory")
    return path


# ============================================================================
# IMAGE SEQUENCE
# ============================================================================

def test_image_sequence_writes_numbered_files(tmp_path, frames):
    out_dir = tmp_path / "seq"

    with ImageSequenceSink(out_dir, SIZE) as sink:
        for frame in frames:
            sink.write(frame)

    names = sorted(p.name for p in out_dir.iterdir())
    assert names == ["out0000.png", "out0001.png", "out0002.png"]
    assert sink.frames_written == 3
    assert [p.name for p in sink.outputs] == names

    for frame, path in zip(frames, sink.outputs):
        np.testing.assert_array_equal(np.asarray(Image.open(path)), frame)


def test_image_sequence_custom_pattern(tmp_path, frames):
    with ImageSequenceSink(tmp_path, SIZE, pattern="star_{index}.png") as sink:
        sink.write(frames[0])
        sink.write(frames[1])

    assert (tmp_path / "star_0.png").exists()
    assert (tmp_path / "star_1.png").exists()


def test_image_sequence_leaves_no_temp_files(tmp_path, frames):
    with ImageSequenceSink(tmp_path, SIZE) as sink:
        sink.write(frames[0])

    assert [p.name for p in tmp_path.iterdir()] == ["out0000.png"]


def test_image_sequence_unwritable_directory(blocker):
    sink = ImageSequenceSink(blocker / "frames", SIZE)

    with pytest.raises(SinkError, match="Cannot create"):
        sink.open()


# ============================================================================
# VIDEO
# ============================================================================

def test_video_sink_encodes(tmp_path, frames):
    path = tmp_path / "clip.avi"

    with VideoSink(path, fps=25, size=SIZE, codec="MJPG") as sink:
        for frame in frames:
            sink.write(frame)

    assert sink.frames_written == 3
    assert sink.outputs == [path]
    assert path.stat().st_size > 0


def test_video_sink_rejects_bad_codec(tmp_path):
    with pytest.raises(ValueError, match="FourCC"):
        VideoSink(tmp_path / "x.mp4", fps=25, size=SIZE, codec="h264x")


def test_video_sink_unwritable_directory(blocker):
    sink = VideoSink(blocker / "out.mp4", fps=25, size=SIZE)

    with pytest.raises(SinkError):
        sink.open()


def test_video_sink_no_outputs_before_write(tmp_path):
    sink = VideoSink(tmp_path / "out.avi", fps=25, size=SIZE, codec="MJPG")

    assert sink.outputs == []


# ============================================================================
# FRAME VALIDATION
# ============================================================================

def test_write_before_open_rejected(tmp_path, frames):
    sink = ImageSequenceSink(tmp_path, SIZE)

    with pytest.raises(SinkError, match="not open"):
        sink.write(frames[0])


@pytest.mark.parametrize("bad", [
    np.zeros((16, 12, 3), dtype=np.uint8),
    np.zeros((12, 16), dtype=np.uint8),
    np.zeros((12, 16, 3), dtype=np.float32),
])
def test_wrong_frame_rejected(tmp_path, bad):
    with ImageSequenceSink(tmp_path, SIZE) as sink:
        with pytest.raises(SinkError, match="Expected uint8 frame"):
            sink.write(bad)

    assert sink.frames_written == 0


def test_open_close_idempotent(tmp_path, frames):
    sink = ImageSequenceSink(tmp_path, SIZE)
    sink.open()
    sink.open()
    sink.write(frames[0])
    sink.close()
    sink.close()

    with pytest.raises(SinkError):
        sink.write(frames[1])


# ============================================================================
# FACTORY
# ============================================================================

def test_make_sink_images(tmp_path):
    cfg = OutputConfig(kind="images", directory=str(tmp_path), image_pattern="f{index:03d}.png")
    sink = make_sink(cfg, fps=25, size=SIZE)

    assert isinstance(sink, ImageSequenceSink)
    assert sink.directory == tmp_path
    assert sink.pattern == "f{index:03d}.png"
    assert sink.size == SIZE


def test_make_sink_video(tmp_path):
    cfg = OutputConfig(kind="video", directory=str(tmp_path), video_name="run.avi", codec="MJPG")
    sink = make_sink(cfg, fps=30, size=SIZE)

    assert isinstance(sink, VideoSink)
    assert sink.path == tmp_path / "run.avi"
    assert sink.fps == 30
    assert sink.codec == "MJPG"
