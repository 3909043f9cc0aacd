"""
Live object-detection overlay.

Loads the model once, then serves a control page with Start/Stop buttons and
the live view. While the camera is running, frames are painted at display
rate and an inference tick runs every sampler.interval_ms.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the surface in an OpenCV window ('q' stops the camera)
    --autostart: Start the camera immediately instead of waiting for the UI
    --no-web: Do not start the web interface (implies --autostart)
"""

import os
import sys
import argparse
import asyncio
import logging
import yaml
import cv2
from typing import Dict, Any, Tuple, Optional

import uvicorn

from display.surface import DrawingSurface
from inference.session import load_session
from models.config import Config
from observation import create_source_from_config
from ops.logging import setup_logging
from runtime.context import DetectionContext
from runtime.controller import OverlayController
from web.app import create_app

WINDOW_NAME = "Detection Overlay"


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

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera', {}) or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)):
        return False, "camera.device_id must be an integer (index) or string (URL/path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2 or not all(_is_positive_int(x) for x in res):
            return False, "camera.resolution must be a list of two positive integers [width, height]"

    model = config.get('model', {}) or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"
    if 'input_size' in model:
        size = model['input_size']
        if not isinstance(size, list) or len(size) != 2 or not all(_is_positive_int(x) for x in size):
            return False, "model.input_size must be a list of two positive integers [width, height]"
    if 'providers' in model:
        if not isinstance(model['providers'], list) or not all(isinstance(p, str) for p in model['providers']):
            return False, "model.providers must be a list of execution provider names"
    for key in ('runtime_dir', 'boxes_output', 'scores_output'):
        if model.get(key) is not None and not isinstance(model[key], str):
            return False, f"model.{key} must be a string"

    detection = config.get('detection', {}) or {}
    threshold = detection.get('confidence_threshold', 0.9)
    if not isinstance(threshold, (int, float)) or not (0 <= threshold <= 1):
        return False, "detection.confidence_threshold must be between 0 and 1"
    if not _is_positive_int(detection.get('max_detections', 100)):
        return False, "detection.max_detections must be a positive integer"
    if detection.get('normalize', 'frame_max') not in ('frame_max', 'none'):
        return False, "detection.normalize must be one of: frame_max, none"

    sampler = config.get('sampler', {}) or {}
    if not _is_positive_int(sampler.get('interval_ms', 100)):
        return False, "sampler.interval_ms must be a positive integer"

    display = config.get('display', {}) or {}
    for key in ('width', 'height', 'refresh_hz'):
        if key in display and not _is_positive_int(display[key]):
            return False, f"display.{key} must be a positive integer"

    web = config.get('web', {}) or {}
    if 'port' in web and not (_is_positive_int(web['port']) and web['port'] < 65536):
        return False, "web.port must be between 1 and 65535"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def show_preview(surface: DrawingSurface) -> bool:
    """Show the surface in an OpenCV window. Returns False if user pressed 'q'."""
    cv2.imshow(WINDOW_NAME, surface.snapshot())
    key = cv2.waitKey(1) & 0xFF
    return key != ord('q')


def build_controller(config: Dict[str, Any], display: bool = False) -> OverlayController:
    """Load the model session and wire the context and controller."""
    cfg = Config.from_dict(config)
    session = load_session(cfg.model)
    ctx = DetectionContext.from_config(cfg, session)
    camera_cfg = config['camera']
    return OverlayController(
        ctx,
        source_factory=lambda: create_source_from_config(camera_cfg, source_id="main-camera"),
        on_frame=show_preview if display else None,
    )


async def run(config: Dict[str, Any], display: bool, autostart: bool, web_enabled: bool) -> None:
    controller = build_controller(config, display=display)
    cfg = controller.ctx.config

    if autostart or not web_enabled:
        await controller.start()

    try:
        if web_enabled:
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(controller, stream_fps=cfg.web.stream_fps),
                    host=cfg.web.host,
                    port=cfg.web.port,
                    log_level="info",
                )
            )
            logging.info(f"Web interface starting on port {cfg.web.port}")
            await server.serve()
        else:
            while controller.running:
                await asyncio.sleep(0.5)
    finally:
        await controller.stop()
        if display:
            cv2.destroyAllWindows()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Live object-detection overlay')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the overlay in an OpenCV window')
    parser.add_argument('--autostart', action='store_true',
                        help='Start the camera immediately')
    parser.add_argument('--no-web', action='store_true',
                        help='Disable the web interface (implies --autostart)')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting detection overlay")

    web_enabled = (config.get('web', {}) or {}).get('enabled', True) and not args.no_web
    display = args.display or (config.get('display', {}) or {}).get('window', False)

    try:
        asyncio.run(run(config, display=display, autostart=args.autostart, web_enabled=web_enabled))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("Detection overlay stopped")


if __name__ == "__main__":
    main()
