from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    InventoryEngineError, ValidationError, NotFoundError, ConflictError,
    CycleDetected, DataQualityWarning
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'InventoryEngineError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'CycleDetected',
    'DataQualityWarning'
]
