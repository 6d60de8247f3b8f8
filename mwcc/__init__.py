"""
mwcc: a client for the MediaWiki Action API.

Provides:
- MWCC: API client with token handling, continued and mass queries
- ApiError: the error raised by every failing call
- ClientConfig: client settings
- TokenType: the action token types
- setup_logging: logging configuration for applications
"""

__version__ = "1.2.0"

from mwcc.config import ClientConfig
from mwcc.errors import ApiError
from mwcc.tokens import TokenType
from mwcc.client import MWCC
from mwcc.logging_config import setup_logging

__all__ = [
    "MWCC",
    "ApiError",
    "ClientConfig",
    "TokenType",
    "setup_logging",
]
