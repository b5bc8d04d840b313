"""
Explorer Adapter Exceptions - Error taxonomy for ledger lookups.

Primary lookups propagate these to the caller unchanged. Secondary lookups
(related transactions, price, activity feeds) catch them and degrade.
"""

from datetime import datetime
from typing import Any, Optional


class LedgerAdapterError(Exception):
    """Base exception for all explorer adapter errors."""

    user_message = "An unexpected error occurred."

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.adapter_name = adapter_name
        self.ledger = ledger
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "adapter_name": self.adapter_name,
            "ledger": self.ledger,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.adapter_name:
            parts.append(f"[adapter={self.adapter_name}]")
        if self.ledger:
            parts.append(f"[ledger={self.ledger}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class InvalidInputError(LedgerAdapterError):
    """Query is malformed or does not match any pattern the ledger accepts."""

    user_message = "Invalid input. Please check your data."

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger, None, context)
        self.query = query

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["query"] = self.query
        return data


class HashNotFoundError(LedgerAdapterError):
    """Hash matched neither a block nor a transaction."""

    user_message = "Requested data not found."

    def __init__(
        self,
        message: str,
        hash_value: Optional[str] = None,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger, original_error)
        self.hash_value = hash_value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["hash"] = self.hash_value
        return data


class UpstreamHTTPError(LedgerAdapterError):
    """Backend was reachable but answered with a failure status or error payload."""

    user_message = "The ledger service returned an error."

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data


class RecordNotFoundError(UpstreamHTTPError):
    """Backend answered that the requested record does not exist."""

    user_message = "Requested data not found."

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = 404,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            adapter_name=adapter_name,
            ledger=ledger,
            response_body=response_body,
            request_url=request_url,
        )


class NetworkError(LedgerAdapterError):
    """Transport or connectivity fault (DNS, connection reset, ...)."""

    user_message = "Network error. Please check your connection."

    def __init__(
        self,
        message: str,
        request_url: Optional[str] = None,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger, original_error)
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["request_url"] = self.request_url
        return data


class RequestTimeoutError(LedgerAdapterError):
    """Request exceeded the configured deadline and was cancelled."""

    user_message = "The request timed out. Please try again."

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        request_url: Optional[str] = None,
        adapter_name: Optional[str] = None,
        ledger: Optional[str] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger)
        self.timeout_seconds = timeout_seconds
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "timeout_seconds": self.timeout_seconds,
            "request_url": self.request_url,
        })
        return data


class UnsupportedLedgerError(LedgerAdapterError):
    """Requested ledger id has no adapter."""

    user_message = "This cryptocurrency is not supported."

    def __init__(
        self,
        message: str,
        ledger: Optional[str] = None,
        supported_ledgers: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, None, ledger)
        self.supported_ledgers = supported_ledgers or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["supported_ledgers"] = self.supported_ledgers
        return data


class ConfigurationError(LedgerAdapterError):
    """Adapter settings are missing or invalid."""

    user_message = "The explorer is not configured correctly."

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        config_key: Optional[str] = None,
        ledger: Optional[str] = None,
    ) -> None:
        super().__init__(message, adapter_name, ledger)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
