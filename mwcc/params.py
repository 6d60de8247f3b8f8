#!/usr/bin/env python3
"""
Parameter handling for MediaWiki API requests.

Callers pass parameters in an ergonomic form:
- lists for multi-value parameters: {"meta": ["userinfo", "siteinfo"]}
- booleans for flags: {"minor": True, "bot": False}
- None for "not supplied"

normalize_params() turns that into the flat form the API accepts, and
to_wire() converts what is left into strings at serialization time.
"""

from typing import Any, Union

Scalar = Union[str, int, float, bool, None]
ApiParams = dict[str, Union[Scalar, list, tuple]]

DEFAULT_PARAMS = {
    "action": "query",
    "format": "json",
    "formatversion": "2",
}


def multivalue_item(value: Scalar) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_params(params: ApiParams) -> ApiParams:
    """
    Massage parameters into the format the API expects (in place).

    Args:
        params: Parameter mapping; it is modified and also returned

    Returns:
        The same mapping, with list values pipe-joined and False/None
        values removed
    """
    for key in list(params):
        value = params[key]
        if isinstance(value, (list, tuple)):
            params[key] = "|".join(multivalue_item(v) for v in value)
        elif value is False or value is None:
            # Flags are only false when not given at all
            del params[key]
    return params


def to_wire(value: Any) -> str:
    """Convert a normalized scalar to the string sent over the wire."""
    if value is True:
        return "1"
    return str(value)


def is_multivalue(value: Any) -> bool:
    return isinstance(value, (list, tuple))
