from .config import AppConfig, get_app_config
from .system import LoggingConfig, TransportConfig

__all__ = ["AppConfig", "LoggingConfig", "TransportConfig", "get_app_config"]
