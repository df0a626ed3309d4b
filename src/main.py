"""
Frame tracker: detect and track objects in a video, frame by frame.

Reads a video, runs a detector on every frame, drives the tracker through
its begin/update/finish protocol and writes annotated frames (and/or shows
them on screen).

Usage:
    python src/main.py --config config/config.yaml --video data/video.mp4 --display

Arguments:
    --config: Path to configuration file
    --video: Video file, camera index or stream URL (overrides source.device_id)
    --display: Enable visual display
    --no-save: Do not write annotated frames
    --max-frames: Stop after this many frames (0 = whole video)
    --output-dir: Directory for annotated frames

Environment:
    FRAMETRACK_ENABLE_VISUALIZATION=1 enables the display (off by default).
    FRAMETRACK_SAVE_OUTPUT=0 disables writing annotated frames (on by default).
"""

import os
import sys
import argparse
import logging
import signal
import cv2
import yaml
from typing import Any, Dict, List, Optional, Tuple

from ops.logging import setup_logging
from pipeline import InvalidStateError, create_engine_from_config

ENV_ENABLE_VISUALIZATION = "FRAMETRACK_ENABLE_VISUALIZATION"
ENV_SAVE_OUTPUT = "FRAMETRACK_SAVE_OUTPUT"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not one of the files above
        explicit = os.path.abspath(config_path)
        if (
            os.path.exists(config_path)
            and explicit != os.path.abspath(local_overrides_path)
            and explicit != os.path.abspath(base_path)
        ):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return config[name] as a dict, creating it if missing or null."""
    if not isinstance(config.get(name), dict):
        config[name] = {}
    return config[name]


def log_environment() -> None:
    """Log the OpenCV build and the environment variables the run reads."""
    logging.info(f"OpenCV version: {cv2.__version__}")
    for name in (ENV_ENABLE_VISUALIZATION, ENV_SAVE_OUTPUT, "CUDA_VISIBLE_DEVICES"):
        logging.info(f"Environment variable {name}={os.environ.get(name, '')!r}")


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply the sink toggles from the environment.

    Visualization is off unless explicitly enabled; saving output is on
    unless explicitly disabled.
    """
    output = _section(config, "output")
    if os.environ.get(ENV_ENABLE_VISUALIZATION, "") == "1":
        output["visualize"] = True
    if os.environ.get(ENV_SAVE_OUTPUT, "") == "0":
        output["save_output"] = False
    return config


def apply_cli_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply command-line overrides on top of file and environment config."""
    if args.video is not None:
        device_id: Any = int(args.video) if args.video.isdigit() else args.video
        _section(config, "source")["device_id"] = device_id
    if args.display:
        _section(config, "output")["visualize"] = True
    if args.no_save:
        _section(config, "output")["save_output"] = False
    if args.output_dir is not None:
        _section(config, "output")["output_dir"] = args.output_dir
    if args.max_frames is not None:
        _section(config, "run")["max_frames"] = args.max_frames or None
    return config


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['source', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate source settings
    source = config.get('source') or {}
    if 'device_id' not in source:
        return False, "Missing source.device_id"
    if isinstance(source['device_id'], bool) or not isinstance(source['device_id'], (int, str)):
        return False, "source.device_id must be an integer (camera index) or string (path/URL)"
    if isinstance(source['device_id'], int) and source['device_id'] < 0:
        return False, "source.device_id integer must be non-negative"

    # Validate detection settings
    detection = config.get('detection') or {}
    backend = detection.get('backend', 'bgsub')
    if backend not in ('bgsub', 'yolo'):
        return False, "detection.backend must be one of: bgsub, yolo"
    if backend == 'bgsub':
        mca = detection.get('min_contour_area', 1000)
        if not isinstance(mca, int) or mca <= 0:
            return False, "detection.min_contour_area must be a positive integer"
    if backend == 'yolo':
        yolo_cfg = detection.get('yolo') or {}
        if not isinstance(yolo_cfg.get('model'), str) or not yolo_cfg.get('model'):
            return False, "detection.yolo.model is required when detection.backend is 'yolo'"
        for key in ('conf_threshold', 'iou_threshold'):
            if key in yolo_cfg:
                value = yolo_cfg[key]
                if not isinstance(value, (int, float)) or not (0 <= value <= 1):
                    return False, f"detection.yolo.{key} must be a number between 0 and 1"

    # Optional tracking settings (used by IoUTracker)
    tracking = config.get('tracking') or {}
    if 'max_frames_since_seen' in tracking:
        mfs = tracking['max_frames_since_seen']
        if not isinstance(mfs, int) or mfs < 0:
            return False, "tracking.max_frames_since_seen must be a non-negative integer"
    if 'iou_threshold' in tracking:
        iou = tracking['iou_threshold']
        if not isinstance(iou, (int, float)) or not (0 < iou <= 1):
            return False, "tracking.iou_threshold must be between 0 and 1"

    # Optional output settings
    output = config.get('output') or {}
    for key in ('visualize', 'save_output'):
        if key in output and not isinstance(output[key], bool):
            return False, f"output.{key} must be true or false"
    if 'output_dir' in output and (not isinstance(output['output_dir'], str) or not output['output_dir']):
        return False, "output.output_dir must be a non-empty string"

    # Optional run bound
    run = config.get('run') or {}
    max_frames = run.get('max_frames')
    if max_frames is not None and (not isinstance(max_frames, int) or max_frames <= 0):
        return False, "run.max_frames must be a positive integer or null"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Frame tracker - detect and track objects in video')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--video', type=str, default=None,
                        help='Video file, camera index or stream URL')
    parser.add_argument('--display', action='store_true',
                        help='Enable visual display')
    parser.add_argument('--no-save', action='store_true',
                        help='Do not write annotated frames')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames (0 = whole video)')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory for annotated frames')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function. Returns the process exit status."""
    args = parse_args(argv)

    config = load_config(args.config)
    apply_env_overrides(config)
    apply_cli_overrides(config, args)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    setup_logging(config['log_path'], config['log_level'])
    log_environment()
    logging.info("Starting frame tracker")

    try:
        engine = create_engine_from_config(config)
    except (OSError, ImportError, ValueError) as e:
        logging.error(f"Failed to initialize pipeline: {e}")
        return 1

    # Stop requests take effect at the next frame boundary
    def _request_stop(signum, frame):
        logging.info(f"Received signal {signum}, stopping after the current frame")
        engine.stop()

    previous_handlers = {
        sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        engine.run()
    except InvalidStateError as e:
        logging.error(f"Tracking protocol violated at frame {e.frame_index} in {e.call}(): {e}")
        return 1
    except Exception as e:
        frame_index = engine.orchestrator.last_frame_index
        next_index = 0 if frame_index is None else frame_index + 1
        logging.error(f"Pipeline aborted at frame {next_index}: {type(e).__name__}: {e}")
        return 1
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)

    logging.info(f"Frame tracker stopped: {engine.stats.to_dict()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
