"""Command-line entry point for rendering a starfield animation.

Usage:
    # Defaults (720x576 PNG stills in outputs/starfield/)
    starfield-render

    # From a YAML config, encoded as video
    starfield-render --config configs/starfield_v1.yaml --kind video

    # Quick preview: 10 frames, fixed seed, 4 render threads
    starfield-render --frames 10 --seed 7 --workers 4 --output outputs/preview

Outputs (in --output / output.directory):
    - out0000.png ... (kind=images) or out.mp4 (kind=video)
    - manifest.yaml: config, config hash, per-frame and output-file hashes, timings

Exit codes:
    0: All frames written
    1: Invalid config or output failure
    2: Invalid command-line usage
    130: Interrupted
"""

import argparse
import logging
import sys
from typing import List, Optional

from starfield.pipeline import render_animation
from starfield.sinks import SinkError
from starfield.utils import logging_config, validators

logger = logging.getLogger(__name__)


def _seed(value: str) -> Optional[int]:
    if value.lower() in ("none", "null", "random"):
        return None
    return int(value)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a flight through a tunnel of stars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to starfield.v1 YAML config (default: built-in defaults)'
    )
    parser.add_argument('--output', type=str, help='Output directory (output.directory)')
    parser.add_argument('--kind', choices=list(validators.SINK_KINDS), help='Sink kind (output.kind)')
    parser.add_argument('--codec', type=str, help='FourCC video codec (output.codec)')
    parser.add_argument('--frames', type=int, help='Number of frames (animation.frames)')
    parser.add_argument('--fps', type=int, help='Frames per second (animation.fps)')
    parser.add_argument(
        '--seed',
        type=_seed,
        default=...,
        help='Star field seed; "none" for an unseeded run'
    )
    parser.add_argument('--workers', type=int, help='Frames rendered concurrently (render.workers)')

    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=logging_config.LOG_LEVELS,
        default='INFO',
        help='Logging level, default: INFO'
    )
    parser.add_argument('--log-file', default=None, help='Optional log file')
    parser.add_argument('--json-logs', action='store_true', help='JSON lines in the log file')
    parser.add_argument(
        '--log-max-mb',
        type=float,
        default=0.0,
        help='Rotate the log file at this size (MB, 3 backups); 0 disables rotation'
    )
    parser.add_argument('--no-color', action='store_true', help='Plain console log levels')

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> validators.StarfieldConfigV1:
    """Load the config file (or defaults) and apply CLI overrides."""
    if args.config:
        cfg = validators.load_starfield_config(args.config)
    else:
        cfg = validators.StarfieldConfigV1()

    overrides = {
        'output.directory': args.output,
        'output.kind': args.kind,
        'output.codec': args.codec,
        'animation.frames': args.frames,
        'animation.fps': args.fps,
        'render.workers': args.workers,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    overrides['seed'] = args.seed
    try:
        return cfg.with_overrides(overrides)
    except ValueError as e:
        raise ValueError(f"Invalid command-line override: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging_config.setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        json=args.json_logs,
        color=not args.no_color,
        max_bytes=int(args.log_max_mb * 1_000_000),
        quiet_libs=["PIL"],
        context={"app": "render"}
    )
    logging_config.install_excepthook()

    try:
        cfg = build_config(args)
        result = render_animation(cfg)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    except SinkError as e:
        logger.error(f"Output failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted; frames written so far are complete")
        return 130
    finally:
        logging_config.pop_context(keys=["app"])

    logger.info(
        f"Done: {result['frames_written']} frame(s), "
        f"render mean {result['timings'].get('render', {}).get('mean_s', 0.0):.3f}s/frame"
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
