"""
Error taxonomy for OrderPick.
Services raise these; main.py turns them into a single JSON error body.
"""
from typing import Optional


class OrderPickError(Exception):
    """Base error: carries the HTTP status and a stable error_code for the API."""

    status_code = 500
    error_code = "internal_error"

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def to_dict(self) -> dict:
        """Response body for the operator UI."""
        body = {"error_code": self.error_code, "message": self.message}
        if self.upstream_status is not None:
            body["upstream_status"] = self.upstream_status
            body["upstream_body"] = self.upstream_body
        return body


class ConfigMissing(OrderPickError):
    """Remote base URL or credential pair not provided to the process."""

    status_code = 503
    error_code = "config_missing"


class UpstreamUnavailable(OrderPickError):
    """No response from the remote platform (connection error, timeout)."""

    status_code = 503
    error_code = "upstream_unavailable"


class UpstreamRejected(OrderPickError):
    """Remote platform answered with a non-2xx status."""

    status_code = 502
    error_code = "upstream_rejected"


class AuthRejected(UpstreamRejected):
    """Remote platform refused the credential pair (401/403)."""

    error_code = "auth_rejected"


class OrderNotFound(UpstreamRejected):
    """Order does not exist upstream (404) or is not open."""

    status_code = 404
    error_code = "order_not_found"


class PersistenceUnavailable(OrderPickError):
    """Local progress store I/O failure."""

    status_code = 503
    error_code = "persistence_unavailable"


class ValidationError(OrderPickError):
    """Malformed input, from the caller or from an upstream payload."""

    status_code = 400
    error_code = "validation_error"


class OrderNotCompletable(ValidationError):
    """Completion requested while some line items are not fully purchased."""

    status_code = 409
    error_code = "order_not_completable"


class OperatorUnauthorized(OrderPickError):
    """Operator token missing or wrong while OPERATOR_TOKEN is configured."""

    status_code = 401
    error_code = "operator_unauthorized"
