from .loader import ConfigError, EndpointConfig, ImportConfig, ParserConfig, config_from_dict, load_config

__all__ = [
    "ConfigError",
    "EndpointConfig",
    "ImportConfig",
    "ParserConfig",
    "config_from_dict",
    "load_config",
]
