#!/usr/bin/env python3
"""
Error type for MediaWiki API calls.

Every failing call raises ApiError. The exception mirrors the API's own
error envelope, so callers can branch on ``err.code`` whether the failure
came from the server, the transport or a local check:

    try:
        api.post_with_token("csrf", params)
    except ApiError as err:
        if err.code == "editconflict":
            ...
"""

from typing import Any, Optional

# Transport-adjacent
OK_BUT_EMPTY = "ok-but-empty"
INVALID_JSON = "invalidjson"
HTTP = "http"
ABORTED = "aborted"

# Token protocol
BAD_TOKEN = "badtoken"
BAD_NAMED_TOKEN = "badnamedtoken"

# Batch validation
NONARRAY_EXCEPTION = "nonarray-exception"
EMPTY_FIELD = "emptyfield"
NO_MULTIVALUE = "nomultivalue"
NONIDENTICAL_ARRAYS = "nonindentical-arrays"
INVALID_LIMIT = "invalidlimit"

# Page helpers
INVALID_TITLE = "invalidtitle"
NOCREATE_MISSING = "nocreate-missing"
PAGE_MISSING = "pagemissing"


class ApiError(Exception):
    """An API call that did not produce a usable response."""

    def __init__(
        self,
        code: str,
        info: str = "",
        details: Any = None,
        response: Optional[dict] = None,
    ):
        super().__init__(f"{code}: {info}" if info else code)
        self.code = code
        self.info = info
        self.details = details
        self._response = response

    @classmethod
    def from_response(cls, data: dict) -> "ApiError":
        """Build an error from a response body carrying an ``error`` object."""
        error = data.get("error") or {}
        if not isinstance(error, dict):
            error = {"code": str(error)}
        return cls(
            code=error.get("code", "unknown"),
            info=error.get("info", ""),
            response=data,
        )

    @property
    def response(self) -> dict:
        """The ``{"error": {...}}`` envelope, verbatim for server errors."""
        if self._response is not None:
            return self._response
        error = {"code": self.code, "info": self.info}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}

    def __repr__(self) -> str:
        return f"ApiError(code={self.code!r}, info={self.info!r})"
