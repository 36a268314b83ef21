"""
The controller config is loaded and validated once at import. Attribute access
on this module reads from it, so `config.resync_interval_seconds` always sees
command line and test overrides.
"""

# Local
from .loader import load_library_config, load_validation_config

validation_config = load_validation_config()
library_config = load_library_config(validation_config=validation_config)


def __getattr__(name):
    if name in library_config or hasattr({}, name):
        return getattr(library_config, name)
    raise AttributeError(f"No such config attribute {name}")


__all__ = list(library_config.keys())
