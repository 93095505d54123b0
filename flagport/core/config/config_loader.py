"""Unified YAML configuration loading.

Configuration lives in ``config/flagport.yaml`` at the project root; the
directory can be moved with the ``FLAGPORT_CONFIG_DIR`` environment
variable (``.env`` files are honored). Values are read with
``get_config_value("flagport", section, key, default=...)`` so callers
always supply their own fallback.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_config_cache: Optional[Dict[str, Dict[str, Any]]] = None
_config_lock = threading.Lock()


def get_config_path() -> Path:
    """Return the configuration directory."""
    override = os.getenv("FLAGPORT_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(__file__).parent.parent.parent.parent / "config"


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def load_unified_config() -> Dict[str, Dict[str, Any]]:
    """Load every ``*.yaml`` file in the config directory, keyed by file stem.

    Missing directory or files yield an empty mapping; a malformed file is
    logged and skipped so callers fall back to their defaults.
    """
    global _config_cache

    with _config_lock:
        if _config_cache is not None:
            return _config_cache

        configs: Dict[str, Dict[str, Any]] = {}
        config_dir = get_config_path()
        if not config_dir.is_dir():
            logger.warning(f"Config directory not found at {config_dir}, using defaults")
        else:
            for path in sorted(config_dir.glob("*.yaml")):
                try:
                    configs[path.stem] = _load_yaml(path)
                except (OSError, ValueError, yaml.YAMLError) as e:
                    logger.error(f"Error loading {path.name}: {e}")

        _config_cache = configs
        return configs


def reload_configs() -> Dict[str, Dict[str, Any]]:
    """Drop the cache and re-read the config directory."""
    global _config_cache
    with _config_lock:
        _config_cache = None
    return load_unified_config()


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Look up a nested value, e.g. ``get_config_value("flagport", "scan", "max_workers")``.

    Returns ``default`` when the file or any key along the path is missing.
    """
    node: Any = load_unified_config().get(config_name)
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return default if node is None else node
