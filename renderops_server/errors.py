"""Error model shared by the RenderOps runtime and API."""

from __future__ import annotations

from typing import Optional


class RenderOpsError(Exception):
    """Base class for errors surfaced to users."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        text = self.message
        if self.code:
            text = f"{text} ({self.code})"
        if self.hint:
            text = f"{text} Hint: {self.hint}"
        return text


class ProviderScopeError(RenderOpsError):
    """Raised when a provider consumer is used outside its provider scope."""

    code = "PROVIDER_SCOPE"


class InvalidTableNameError(RenderOpsError):
    """Raised when a table name fails validation."""

    code = "INVALID_TABLE_NAME"


class TableNotFoundError(RenderOpsError):
    """Raised when a table does not exist in the target database."""

    code = "TABLE_NOT_FOUND"


class ConnectionConfigError(RenderOpsError):
    """Raised when connection parameters are incomplete or unsupported."""

    code = "CONNECTION_CONFIG"


class ActionError(RenderOpsError):
    """Raised by server actions for invalid input."""

    code = "ACTION_ERROR"
