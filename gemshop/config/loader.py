"""YAML loader for the retrieval tuning knobs.

Configuration is split in two:

    1. config/config.yaml  -- chunking and retrieval defaults checked into the repo
    2. Environment / .env  -- credentials, storage and provider selection,
                              read by :class:`gemshop.config.settings.Settings`

``load_config`` only handles the first layer.  The built-in defaults below
apply for any key the YAML file leaves out.
"""

from pathlib import Path

import yaml

DEFAULT_CHUNK_SIZE = 1500
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_TOP_K = 5


def load_config(path: str = "config/config.yaml") -> dict:
    """Load the YAML config on top of the built-in defaults.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
            an error; built-in defaults apply.

    Returns:
        Configuration dictionary with the ``chunking`` and ``retrieval``
        sections always present.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    base = {
        "chunking": {"chunk_size": DEFAULT_CHUNK_SIZE, "overlap": DEFAULT_CHUNK_OVERLAP},
        "retrieval": {"top_k": DEFAULT_TOP_K},
    }
    _deep_merge(base, yaml_config)
    return base


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
