from __future__ import annotations

from typing import Any


class MarketDataError(RuntimeError):
    """Base class for failures talking to the market data source."""

    code = "market_data_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NetworkFailure(MarketDataError):
    """Transport error or non-2xx status from the source."""

    code = "network_failure"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.status_code = status_code


class MalformedResponse(MarketDataError):
    """Response body is not JSON, or lacks the fields we read."""

    code = "malformed_response"
