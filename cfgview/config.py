"""
Configuration loading.

Checks for config in:
1. .cfgview/config.json in the project directory
2. The file named by the CFGVIEW_CONFIG environment variable

Later sources override earlier ones; defaults fill anything unset.
"""

import json
import logging
import os
from pathlib import Path

from .cfg_builder import DEFAULT_SUMMARY_MAX
from .layout import LayoutConfig

logger = logging.getLogger(__name__)

CONFIG_DIR = ".cfgview"
CONFIG_FILE = "config.json"
CONFIG_ENV_VAR = "CFGVIEW_CONFIG"


def default_config() -> dict:
    return {
        "summary_max": DEFAULT_SUMMARY_MAX,
        "layout": LayoutConfig().to_dict(),
    }


def _read_config_file(path: Path) -> dict:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a JSON object")
        return {}
    return data


def _merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(project_dir: str | Path | None = None) -> dict:
    """Load cfgview configuration.

    Args:
        project_dir: Directory holding ``.cfgview/config.json``; defaults to
            the current working directory.

    Returns:
        Config dict with "summary_max" and "layout" keys.
    """
    config = default_config()
    project = Path(project_dir) if project_dir is not None else Path.cwd()

    candidates = [project / CONFIG_DIR / CONFIG_FILE]
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path))

    for path in candidates:
        if path.exists():
            config = _merge(config, _read_config_file(path))
    return config


def layout_config_from(config: dict) -> LayoutConfig:
    return LayoutConfig.from_dict(config.get("layout"))
