"""
Logging configuration for simpleq
"""

import logging.config
from typing import Any, Dict, Optional


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the simpleq logger tree."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
        },
        "loggers": {
            "simpleq": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "redis": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the logging configuration, defaulting to the configured log level."""
    if level is None:
        from simpleq.modules.config import get_config

        level = get_config().get("log_level", "INFO")
    logging.config.dictConfig(get_logging_config(level))
