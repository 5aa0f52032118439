"""core.config
Configuration core: load/save helpers for config.ini.

This module provides a tiny ConfigManager used to read and persist simple
key/value settings. Typed views of these values are built by
core.settings.Config; this layer only deals in strings.
"""

import os
from configparser import ConfigParser
from pathlib import Path
from typing import Dict, Optional

ENV_PREFIX = "GS_"

DEFAULTS: Dict[str, str] = {
    "log_level": "INFO",
    "log_debug": "False",
    # Capture scale relative to 1920x1080; 63px slots at scale 1.0
    "scale": "1.0",
    "base_slot_size": "63",
    # Icon sources
    "static_icons": "",
    "static_correlation": "",
    "dynamic_icons": "",
    "dynamic_correlation": "",
    "item_database": "",
    "overlay_icons": "",
    "debug_dir": "",
    "use_static_icons": "True",
    "use_dynamic_icons": "False",
    "watch_dynamic_icons": "False",
    "watch_interval": "1.0",
    "use_legacy_cache_index": "False",
    "load_retries": "3",
    "load_retry_delay_ms": "100",
    # Scanning
    "scan_rotated_icons": "True",
    "use_ocr_short_names": "False",
    "ocr_fallback_threshold": "0.9",
    "match_workers": "0",
    # Inventory grid (HSV bands as h,s,v; grid_line_color as b,g,r)
    "optimize_highlighted": "False",
    "grid_color_min": "0,0,70",
    "grid_color_max": "179,80,125",
    "highlight_color_min": "0,0,140",
    "highlight_color_max": "179,50,230",
    "grid_line_color": "100,100,100",
    "background_alpha": "100",
}


def default_config_path() -> Path:
    if os.name == "nt":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base.joinpath("Gridsight", "config.ini")
    base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base.joinpath("gridsight", "config.ini")


class ConfigManager:
    """Simple configuration manager backed by an INI file.

    Behaviour:
    - Uses a single DEFAULT section for lookups.
    - Creates the file with sensible defaults if it does not exist.
    - Defaults to a per-user config path (%APPDATA% on Windows,
      XDG_CONFIG_HOME or ~/.config on other systems) unless an explicit
      path is provided.
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        self.config_path = Path(config_path) if config_path else default_config_path()
        self.config = ConfigParser()
        self.load()

    def load(self) -> None:
        """Load configuration from disk, creating defaults when needed."""
        existed = self.config_path.exists()
        if existed:
            self.config.read(self.config_path)

        missing = [key for key in DEFAULTS if key not in self.config["DEFAULT"]]
        for key in missing:
            self.config["DEFAULT"][key] = DEFAULTS[key]

        # Write back when the file is new or predates some keys
        if not existed or missing:
            self.save()

    def get(self, key: str, fallback=None):
        """Get a configuration value.

        Precedence is env (GS_<KEY>) > config.ini > fallback.
        """
        val = os.environ.get(f"{ENV_PREFIX}{str(key).upper()}")
        if val is not None and str(val) != "":
            return val
        return self.config["DEFAULT"].get(key, fallback)

    def set(self, key: str, value) -> None:
        self.config["DEFAULT"][key] = str(value)

    def save(self) -> None:
        """Persist current configuration to disk (creates parent directories)."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w", encoding="utf-8") as fh:
            self.config.write(fh)
