"""
This module loads the operator's runtime settings at import time and does the
initial log config
"""

# Standard
from typing import Optional
import os

# First Party
import aconfig
import alog

# Local
from ..exceptions import assert_config
from .validation import get_invalid_params

CONFIG_DIR = os.path.dirname(__file__)
DEFAULT_CONFIG_PATH = os.path.join(CONFIG_DIR, "config.yaml")
DEFAULT_VALIDATION_PATH = os.path.join(CONFIG_DIR, "config_validation.yaml")


def load_config(
    config_path: Optional[str] = None,
    validation_path: Optional[str] = None,
) -> aconfig.Config:
    """Load the operator settings and check them against the validation rules

    Args:
        config_path:  Optional[str]
            Yaml file holding the settings. Every key may be overridden by an
            env var with the upper case key name.
        validation_path:  Optional[str]
            Yaml file holding a validation rule per key

    Returns:
        config:  aconfig.Config
            The validated settings

    Raises:
        ConfigError: Any setting fails its validation rule
    """
    loaded = aconfig.Config.from_yaml(
        config_path or DEFAULT_CONFIG_PATH, override_env_vars=True
    )
    rules = aconfig.Config.from_yaml(
        validation_path or DEFAULT_VALIDATION_PATH, override_env_vars=False
    )
    invalid_params = get_invalid_params(loaded, rules)
    assert_config(
        not invalid_params,
        f"Operator configuration found invalid values: {invalid_params}",
    )
    return loaded


library_config = load_config()

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
