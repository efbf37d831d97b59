from .logging import configure_logging, get_logger
from .metrics import MetricsCollector, metrics

__all__ = ["configure_logging", "get_logger", "MetricsCollector", "metrics"]
