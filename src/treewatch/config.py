"""Per-directory watch configuration helpers."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import logging

import yaml

from .constants import CONFIG_FILE, DEFAULT_LOCK_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass
class WatchConfig:
    """Configuration read from <root>/.treewatch.yaml."""

    ignore: List[str] = field(default_factory=list)
    tick_source: str = "auto"  # see identity.get_tick_source
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT


def load_watch_config(root: Path) -> WatchConfig:
    """Load watch configuration from .treewatch.yaml if present."""

    cfg_path = root / CONFIG_FILE
    if not cfg_path.exists():
        return WatchConfig()

    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unreadable %s: %s", cfg_path, exc)
        return WatchConfig()

    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", cfg_path)
        return WatchConfig()

    ignore = data.get("ignore") or []
    if isinstance(ignore, str):
        ignore = [ignore]

    return WatchConfig(
        ignore=[str(p) for p in ignore],
        tick_source=str(data.get("tick_source", "auto")),
        lock_timeout=float(data.get("lock_timeout", DEFAULT_LOCK_TIMEOUT)),
    )
