"""Structured errors for twohop.

Every error surfaced to a user (CLI or MCP) is a TwohopError carrying a
stable machine-readable code, a human message and optional details.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for programmatic consumers."""

    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"
    INVALID_PATH = "INVALID_PATH"
    CONFIG_ERROR = "CONFIG_ERROR"
    VAULT_NOT_FOUND = "VAULT_NOT_FOUND"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TwohopError(Exception):
    """Error with a code, a message and optional details."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def format_error_json(code: ErrorCode | str, message: str, details: dict | None = None) -> str:
    """Format an arbitrary error as the same JSON shape TwohopError uses."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    error: dict[str, Any] = {"code": code_value, "message": message}
    if details:
        error["details"] = details
    return json.dumps({"error": error}, default=str)
