#!/usr/bin/env python3
"""
Action token types and the per-client token cache.

Token types form a closed set. The names that API action=tokens used to
accept (edit, delete, move, ...) are all served by the csrf token today,
so canonical_token_type() maps them to TokenType.CSRF before the cache is
ever consulted.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Union

from mwcc.errors import ApiError, BAD_NAMED_TOKEN

logger = logging.getLogger(__name__)


class TokenType(str, Enum):
    CREATEACCOUNT = "createaccount"
    CSRF = "csrf"
    DELETEGLOBALACCOUNT = "deleteglobalaccount"
    LOGIN = "login"
    PATROL = "patrol"
    ROLLBACK = "rollback"
    SETGLOBALACCOUNTSTATUS = "setglobalaccountstatus"
    USERRIGHTS = "userrights"
    WATCH = "watch"

    @property
    def response_key(self) -> str:
        """Key of this token in a ``query.tokens`` response object."""
        return f"{self.value}token"


LEGACY_CSRF_TYPES = frozenset({
    "edit",
    "delete",
    "protect",
    "move",
    "block",
    "unblock",
    "email",
    "import",
    "options",
})

_BY_RESPONSE_KEY = {t.response_key: t for t in TokenType}


def canonical_token_type(token_type: Union[str, TokenType]) -> TokenType:
    """
    Resolve a token type name, mapping legacy names to csrf.

    Raises:
        ApiError: badnamedtoken if the name is not a known token type
    """
    if isinstance(token_type, TokenType):
        return token_type
    if token_type in LEGACY_CSRF_TYPES:
        logger.warning(f'Use of the "{token_type}" token is deprecated. Use "csrf" instead.')
        return TokenType.CSRF
    try:
        return TokenType(token_type)
    except ValueError:
        raise ApiError(
            BAD_NAMED_TOKEN,
            f'Could not find a token named "{token_type}" (check for typos?)',
        ) from None


class TokenCache:
    """Tokens fetched for one client. Never holds empty strings."""

    def __init__(self):
        self._tokens: dict[TokenType, str] = {}
        self._lock = threading.Lock()

    def get(self, token_type: TokenType) -> Optional[str]:
        with self._lock:
            return self._tokens.get(token_type)

    def replace(self, response_tokens: dict) -> None:
        """
        Replace every cached token with a ``query.tokens`` response object.

        Unknown keys and empty values are ignored.
        """
        tokens = {}
        for key, value in response_tokens.items():
            token_type = _BY_RESPONSE_KEY.get(key)
            if token_type is None:
                logger.debug(f"Ignoring unknown token in response: {key}")
                continue
            if value:
                tokens[token_type] = value
        with self._lock:
            self._tokens = tokens

    def invalidate(self, token_type: TokenType) -> None:
        with self._lock:
            self._tokens.pop(token_type, None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __contains__(self, token_type: TokenType) -> bool:
        with self._lock:
            return token_type in self._tokens

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
