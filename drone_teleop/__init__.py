from .errors import ConfigStoreError, SchemaError, SchemaIssue
from .settings import (
    Config,
    ControlSource,
    GamepadBindings,
    KeyboardBindings,
    config_from_json,
    config_to_json,
    default_config,
    dump_config,
    load_config,
)

__all__ = [
    "Config",
    "ConfigStoreError",
    "ControlSource",
    "GamepadBindings",
    "KeyboardBindings",
    "SchemaError",
    "SchemaIssue",
    "config_from_json",
    "config_to_json",
    "default_config",
    "dump_config",
    "load_config",
]
