import json
from pathlib import Path

from gradient_profile.models import FeatureOptions

CONFIG_DIR = Path.home() / ".config" / "gradient-profile"
CONFIG_PATH = CONFIG_DIR / "gradient-profile.json"
LOCAL_CONFIG_PATH = Path("gradient-profile.json")

OPTION_KEYS = (
    "strategy",
    "gradient_policy",
    "segments_count",
    "min_segment_distance",
    "interpolate_elevation",
    "normalize",
    "chart_width_pixels",
    "min_normalization_width_pixels",
)


def load_config() -> dict:
    """Load configuration from config files.

    Merges config from global and local files:
    1. ~/.config/gradient-profile/gradient-profile.json (global, loaded first)
    2. ./gradient-profile.json (local, overrides global)

    Returns:
        Dict with merged config values, empty dict if no files exist.
    """
    config = {}
    for config_path in [CONFIG_PATH, LOCAL_CONFIG_PATH]:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                continue
    return config


def options_from_config(config: dict | None = None, **overrides) -> FeatureOptions:
    """Build FeatureOptions from config values, with keyword overrides on top.

    Unknown keys and None overrides are ignored.
    """
    values = {key: config[key] for key in OPTION_KEYS if config and key in config}
    values.update({key: value for key, value in overrides.items() if value is not None})
    return FeatureOptions(**values)
