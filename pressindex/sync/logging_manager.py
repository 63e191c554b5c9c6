"""
Logging for the sync package.

All sync modules log under the ``pressindex.sync`` tree as JSON lines. The
modules grab their loggers at import time, before any configuration is read,
so the level and the optional log file are applied later with ``configure``;
the orchestrator and the bulk reindexer call it with the values from the sync
config. Anything passed as ``extra={'details': ...}`` ends up in the record.
"""

import logging
import sys
import json
from typing import Optional

ROOT_LOGGER = "pressindex.sync"


class JsonFormatter(logging.Formatter):
    """
    Custom formatter to output logs in JSON format.
    """
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)
        if hasattr(record, 'details'):
            log_record['details'] = record.details
        return json.dumps(log_record, ensure_ascii=False, default=str)


class LoggingManager:
    """
    Owns the handlers of the ``pressindex.sync`` logger.

    A singleton; ``configure`` may be called any number of times.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(LoggingManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if getattr(self, '_initialized', False):
            return
        self.logger = logging.getLogger(ROOT_LOGGER)
        self.logger.propagate = False
        self.log_level = None
        self.log_file = None
        self._initialized = True
        self.configure()

    def configure(self, log_level: str = "INFO", log_file: Optional[str] = None) -> None:
        """Replace the level and handlers; a no-op when nothing changed."""
        log_level = log_level.upper()
        if self.logger.handlers and (log_level, log_file) == (self.log_level, self.log_file):
            return

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.log_level = log_level
        self.log_file = log_file
        self.logger.setLevel(log_level)

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        for handler in handlers:
            handler.setLevel(log_level)
            handler.setFormatter(JsonFormatter())
            self.logger.addHandler(handler)

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        if not LoggingManager._instance:
            LoggingManager()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    return LoggingManager.get_logger(name)
