"""
Quizroom - Course Quiz Submission Service
Shared helpers
"""

import logging
import logging.config
from datetime import datetime
from typing import Optional

from ...config import get_settings


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure root logging from settings and return the package logger"""
    settings = get_settings()

    logging_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': settings.LOG_FORMAT
            },
        },
        'handlers': {
            'console': {
                'level': 'DEBUG',
                'class': 'logging.StreamHandler',
                'formatter': 'standard',
            },
        },
        'loggers': {
            'quizroom': {
                'handlers': ['console'],
                'level': (level or settings.LOG_LEVEL).upper(),
                'propagate': False,
            },
            'sqlalchemy.engine': {
                'handlers': ['console'],
                'level': 'INFO' if settings.DB_ECHO else 'WARNING',
                'propagate': False,
            },
        }
    }

    logging.config.dictConfig(logging_config)
    return logging.getLogger("quizroom")


def seconds_remaining(end_time: datetime, now: Optional[datetime] = None) -> int:
    """Whole seconds left until ``end_time``, never negative"""
    now = now or datetime.utcnow()
    return max(0, int((end_time - now).total_seconds()))


__all__ = ["setup_logging", "seconds_remaining"]
