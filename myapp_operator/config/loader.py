"""
Loading of the controller config. Values in config.yaml can be overridden by an
environment variable named after the upper-cased key (e.g. RESYNC_INTERVAL_SECONDS)
and every value is checked against the declarations in config_validation.yaml.
"""

# Standard
from typing import Optional
import os

# First Party
import aconfig
import alog

# Local
from .validation import get_invalid_params

log = alog.use_channel("CONFIG")

CONFIG_DIR = os.path.dirname(__file__)
DEFAULT_CONFIG_FILE = os.path.join(CONFIG_DIR, "config.yaml")
VALIDATION_FILE = os.path.join(CONFIG_DIR, "config_validation.yaml")


def load_validation_config(validation_file: str = VALIDATION_FILE) -> aconfig.Config:
    """Parse the parameter declarations. These are never taken from the
    environment.
    """
    return aconfig.Config.from_yaml(validation_file, override_env_vars=False)


def load_library_config(
    config_file: str = DEFAULT_CONFIG_FILE,
    validation_config: Optional[aconfig.Config] = None,
) -> aconfig.Config:
    """Load the controller config with environment overrides applied

    Args:
        config_file:  str
            Path to the yaml file holding the default values
        validation_config:  Optional[aconfig.Config]
            The parameter declarations to check against. Defaults to the
            packaged declarations.

    Returns:
        library_config:  aconfig.Config
            The validated config

    Raises:
        ValueError: some value has the wrong type or is out of range
    """
    if validation_config is None:
        validation_config = load_validation_config()
    library_config = aconfig.Config.from_yaml(config_file, override_env_vars=True)
    invalid_params = get_invalid_params(library_config, validation_config)
    if invalid_params:
        raise ValueError(
            f"Invalid controller config values for: {', '.join(invalid_params)}"
        )
    log.debug2("Loaded controller config from %s", config_file)
    return library_config
