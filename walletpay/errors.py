"""Exception hierarchy for the wallet client.

Every failure in the core is recoverable: callers catch one of these, show
``message`` and may retry the whole operation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WalletClientError(Exception):
    code = "CLIENT_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class RequestError(WalletClientError):
    """A backend call failed: non-2xx status, bad body, or no connection.

    ``status`` is None when no HTTP response was received.
    """

    code = "REQUEST_FAILED"

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.status = status

    @property
    def unauthorized(self) -> bool:
        return self.status == 401


class SchemaMismatchError(RequestError):
    """Response decoded fine but does not have the expected shape."""

    code = "SCHEMA_MISMATCH"


class FetchError(WalletClientError):
    code = "FETCH_FAILED"


class TransferError(WalletClientError):
    code = "TRANSFER_ERROR"


class TransferValidationError(TransferError):
    """Transfer declined locally, before any network call."""

    code = "TRANSFER_INVALID"

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class TransferFailedError(TransferError):
    """Backend rejected the transfer or could not be reached; message is the backend's."""

    code = "TRANSFER_FAILED"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class EndpointUnavailableError(WalletClientError):
    """Operation has no backing endpoint yet."""

    code = "ENDPOINT_UNAVAILABLE"
