from .settings import AppConfig, get_config, load_config, set_config

__all__ = ["AppConfig", "get_config", "load_config", "set_config"]
