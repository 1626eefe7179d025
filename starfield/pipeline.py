"""Run orchestration: config → Simulation → frames → sink → manifest.

    render_animation(config) → dict
        * Callable function (used by the CLI and tests)
        * Returns: {frames_written, outputs, manifest_path, config_sha256, timings}

Steps:
    1. Build the Simulation once (seeded star field + reference disc)
    2. Render frames 0..N-1 in order (optionally on worker threads)
    3. Write each frame to the sink as soon as it is ready
    4. Write manifest.yaml (config, frame and output-file hashes, timings)
       next to the output

Failure handling:
    - SinkError (or any other exception) stops production immediately; the
      sink is closed and the exception propagates to the caller
    - The frame boundary is the only interruption point; Ctrl+C between
      frames leaves every written frame complete
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from starfield import __version__
from starfield.renderer.frame_renderer import FrameRenderer, Simulation
from starfield.sinks import FrameSink, make_sink
from starfield.utils import fs, hashing
from starfield.utils.logging_config import pop_context, push_context
from starfield.utils.profiler import TimingAccumulator, timer
from starfield.utils.validators import StarfieldConfigV1, flatten_config

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.yaml"


def render_animation(
    config: StarfieldConfigV1,
    rng: Optional[np.random.Generator] = None,
    sink: Optional[FrameSink] = None,
    write_manifest: bool = True
) -> Dict[str, Any]:
    """Render ``config.animation.frames`` frames into a sink.

    Parameters
    ----------
    config : StarfieldConfigV1
        Validated configuration
    rng : np.random.Generator, optional
        Injected random source for the star field; default seeds from config
    sink : FrameSink, optional
        Destination; default is ``make_sink(config.output, ...)``
    write_manifest : bool
        Write manifest.yaml into ``config.output.directory``, default True

    Returns
    -------
    Dict[str, Any]
        - frames_written: int
        - outputs: list[str] (files produced by the sink)
        - manifest_path: Optional[str]
        - config_sha256: str
        - timings: dict (see TimingAccumulator.summary)

    Raises
    ------
    SinkError
        If the sink cannot be opened or a frame cannot be written
    """
    config_dump = config.model_dump(by_alias=True)
    config_sha = hashing.hash_dict(config_dump)
    timings = TimingAccumulator()

    push_context(run=config_sha[:8])
    try:
        with timer("build", sink=timings.add):
            simulation = Simulation.build(config, rng)
        renderer = FrameRenderer(simulation)

        n_frames = config.animation.frames
        width, height = config.output.width, config.output.height
        if sink is None:
            sink = make_sink(config.output, config.animation.fps, (width, height))

        logger.info(
            f"Rendering {n_frames} frame(s): {len(simulation.star_field)} stars, "
            f"{config.render.full_width}x{config.render.full_height} → {width}x{height}, "
            f"sink={type(sink).__name__}, workers={config.render.workers}"
        )
        logger.debug(
            "Config: " + ", ".join(f"{k}={v}" for k, v in flatten_config(config).items())
        )
        if renderer.period_frames is not None and n_frames > renderer.period_frames:
            logger.info(f"Animation repeats every {renderer.period_frames} frames")

        frame_records = []
        frames = renderer.render_many(range(n_frames), workers=config.render.workers)
        try:
            with sink:
                while True:
                    start = time.perf_counter()
                    item = next(frames, None)
                    if item is None:
                        break
                    timings.add("render", time.perf_counter() - start)
                    index, frame = item
                    with timer("write", sink=timings.add):
                        sink.write(frame)
                    frame_records.append({'index': index, 'sha256': hashing.sha256_array(frame)})
                    logger.info(f"frame {index}")
        finally:
            frames.close()

        outputs = [str(p) for p in sink.outputs]
        manifest_path = None
        if write_manifest:
            output_files = [
                {'path': path, 'sha256': hashing.sha256_file(path)} for path in outputs
            ]
            manifest_path = Path(config.output.directory) / MANIFEST_NAME
            fs.atomic_yaml_dump(
                {
                    'version': __version__,
                    'created_utc': datetime.now(timezone.utc).isoformat(),
                    'config_sha256': config_sha,
                    'config': config_dump,
                    'frames_written': sink.frames_written,
                    'outputs': output_files,
                    'timings': timings.summary(),
                    'frames': frame_records,
                },
                manifest_path
            )
            logger.info(f"Saved manifest: {manifest_path}")
    finally:
        pop_context(keys=["run"])

    return {
        'frames_written': sink.frames_written,
        'outputs': outputs,
        'manifest_path': str(manifest_path) if manifest_path else None,
        'config_sha256': config_sha,
        'timings': timings.summary(),
    }
