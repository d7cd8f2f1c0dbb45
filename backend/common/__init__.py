"""
Common Components

Infrastructure shared across the exam engine: logging, exceptions,
configuration and serialization helpers.
"""

from backend.common.logger import app_logger
from backend.common.exceptions import (
    BaseError, NotFoundError, InvalidQuestionError, InvalidStateError,
    DataAccessError, ValidationError, ConfigurationError
)
from backend.common.config import EngineConfig, ConfigLoader, get_engine_config

__all__ = [
    'app_logger',
    'BaseError',
    'NotFoundError',
    'InvalidQuestionError',
    'InvalidStateError',
    'DataAccessError',
    'ValidationError',
    'ConfigurationError',
    'EngineConfig',
    'ConfigLoader',
    'get_engine_config',
]
