# wappy/core/errors.py
"""
Error taxonomy shared by the service layer and the API.

Every error carries a stable ``code`` so the UI can tell apart
"fix your input", "retry later", "window closed" and "tenant not set up".
"""
from typing import Any, Dict, List, Optional


class WappyError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequest(WappyError):
    status_code = 400
    code = "invalid_request"


class TenantNotFound(WappyError):
    status_code = 404
    code = "tenant_not_found"

    def __init__(self, tenant_code: str):
        super().__init__(f"Unknown tenant '{tenant_code}'")
        self.tenant_code = tenant_code


class RegistryUnavailable(WappyError):
    status_code = 500
    code = "registry_unavailable"
    retryable = True


class ConnectionFailed(WappyError):
    status_code = 500
    code = "connection_failed"
    retryable = True

    def __init__(self, message: str, elapsed_ms: int, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.elapsed_ms = elapsed_ms
        self.cause = cause


class GroupLookupFailed(WappyError):
    status_code = 500
    code = "group_lookup_failed"
    retryable = True


class ProviderConfigIncomplete(WappyError):
    status_code = 400
    code = "provider_config_incomplete"

    def __init__(self, tenant_code: str, missing_keys: List[str]):
        super().__init__(
            f"Provider configuration incomplete for '{tenant_code}'",
            details={"missing_keys": list(missing_keys)},
        )
        self.tenant_code = tenant_code
        self.missing_keys = list(missing_keys)


class ProviderRejected(WappyError):
    code = "provider_rejected"

    def __init__(self, status_code: int, body: Any):
        super().__init__("The messaging provider rejected the request", details=body)
        self.status_code = status_code
        self.body = body


class ProviderUnavailable(WappyError):
    status_code = 502
    code = "provider_unavailable"
    retryable = True


class SessionWindowClosed(WappyError):
    status_code = 403
    code = "session_window_closed"
