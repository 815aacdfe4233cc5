"""
PhishTrain Core
===============

Core utilities and shared functionality for PhishTrain modules.
"""

from .config import Config, get_setting
from .database import Database
from .errors import PhishTrainError, ValidationError, NotFoundError, TransportError, IntegrityError
from .logging_service import LoggingService, logger, db_log, hash_ip
from .result import Result

__all__ = [
    'Config', 'get_setting', 'Database', 'LoggingService', 'logger', 'db_log', 'hash_ip',
    'Result', 'PhishTrainError', 'ValidationError', 'NotFoundError', 'TransportError',
    'IntegrityError',
]
