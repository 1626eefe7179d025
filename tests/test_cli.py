"""Tests for the starfield-render command line.

Test cases:
    - Renders a small config to stills and exits 0
    - CLI flags override config values
    - Invalid or missing configs exit 1
    - Sink failures exit 1
    - Bad --log-level values exit 2

Run:
    pytest tests/test_cli.py -v
"""

import logging
import logging.handlers
import sys

import pytest
import yaml

from starfield import cli
from starfield.utils import fs
from starfield.utils.logging_config import get_context


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """Undo the root-logger and excepthook changes main() makes."""
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def small_config(tmp_path):
    """Scaled-down config file writing stills into tmp_path/out."""
    path = tmp_path / "small.yaml"
    path.write_text(yaml.safe_dump({
        'schema': 'starfield.v1',
        'seed': 4,
        'output': {'width': 40, 'height': 30, 'directory': str(tmp_path / "out")},
        'render': {'full_width': 160, 'full_height': 120},
        'stars': {'count': 30},
        'animation': {'frames': 3},
    }))
    return path


# ============================================================================
# SUCCESS
# ============================================================================

def test_main_renders_stills(small_config, tmp_path):
    code = cli.main(['--config', str(small_config), '--log-level', 'WARNING'])

    assert code == 0
    out = tmp_path / "out"
    assert sorted(p.name for p in out.glob("out*.png")) == ["out0000.png", "out0001.png", "out0002.png"]
    assert (out / "manifest.yaml").exists()
    assert "app" not in get_context()


def test_flags_override_config(small_config, tmp_path):
    target = tmp_path / "override"
    code = cli.main([
        '--config', str(small_config),
        '--output', str(target),
        '--frames', '2',
        '--seed', '11',
        '--workers', '2',
        '--log-level', 'WARNING',
    ])

    assert code == 0
    manifest = fs.load_yaml(target / "manifest.yaml")
    assert manifest['frames_written'] == 2
    assert manifest['config']['seed'] == 11
    assert manifest['config']['render']['workers'] == 2


def test_build_config_unseeded(small_config):
    args = cli.parse_args(['--config', str(small_config), '--seed', 'none'])

    assert cli.build_config(args).seed is None


def test_build_config_keeps_file_seed(small_config):
    args = cli.parse_args(['--config', str(small_config)])

    assert cli.build_config(args).seed == 4


def test_log_file_written(small_config, tmp_path):
    log_file = tmp_path / "logs" / "render.log"
    code = cli.main([
        '--config', str(small_config),
        '--frames', '1',
        '--log-level', 'INFO',
        '--log-file', str(log_file),
    ])

    assert code == 0
    assert "frame 0" in log_file.read_text()


def test_log_file_rotates_by_size(small_config, tmp_path):
    log_file = tmp_path / "logs" / "render.log"
    code = cli.main([
        '--config', str(small_config),
        '--log-file', str(log_file),
        '--log-max-mb', '1',
        '--no-color',
    ])

    assert code == 0
    rotating = [h for h in logging.getLogger().handlers
                if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == 1_000_000
    assert rotating[0].baseFilename == str(log_file)


def test_log_level_case_insensitive():
    assert cli.parse_args(['--log-level', 'debug']).log_level == "DEBUG"


# ============================================================================
# FAILURES
# ============================================================================

def test_missing_config_exits_1(tmp_path):
    assert cli.main(['--config', str(tmp_path / "absent.yaml"), '--log-level', 'ERROR']) == 1


def test_invalid_config_exits_1(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({'tunnel': {'diameter': 10.0, 'corridor_diameter': 50.0}}))

    assert cli.main(['--config', str(path), '--log-level', 'ERROR']) == 1


def test_invalid_override_exits_1(small_config):
    assert cli.main(['--config', str(small_config), '--frames', '-5', '--log-level', 'ERROR']) == 1


def test_sink_failure_exits_1(small_config, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")

    code = cli.main([
        '--config', str(small_config),
        '--output', str(blocker / "frames"),
        '--log-level', 'ERROR',
    ])

    assert code == 1


def test_unknown_log_level_exits_2(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(['--log-level', 'LOUD'])

    assert exc.value.code == 2
    assert "invalid choice" in capsys.readouterr().err
