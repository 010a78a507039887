"""
Error taxonomy and error envelope rendering.

ValidationError / NotFoundError / ConfigurationError are terminal for the
operation that raised them. TransformFailure never escapes a batch transform;
it is recorded as the `error` of a single component result.
"""

import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional


class BridgeError(Exception):
    """Base class for every error the core reports to its caller."""

    status = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> Optional[object]:
        return None


@dataclass
class ValidationIssue:
    path: str
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"path": self.path, "field": self.field, "message": self.message}


class ValidationError(BridgeError):
    status = 400
    error = "Validation Error"

    def __init__(self, issues: Iterable[ValidationIssue], message: str = "Invalid scene graph"):
        self.issues = list(issues)
        summary = "; ".join(f"{i.path}.{i.field}: {i.message}" for i in self.issues[:5])
        if len(self.issues) > 5:
            summary += f"; ... ({len(self.issues) - 5} more)"
        super().__init__(f"{message}: {summary}" if summary else message)

    def details(self) -> list:
        return [issue.to_dict() for issue in self.issues]


class NotFoundError(BridgeError):
    status = 404
    error = "Not Found"


class ConfigurationError(BridgeError):
    status = 400
    error = "Configuration Error"

    def __init__(self, message: str, supported: Optional[list] = None):
        self.supported = list(supported or [])
        super().__init__(message)

    def details(self) -> list:
        return [f"{framework}+{styling}" for framework, styling in self.supported]


class TransformFailure(BridgeError):
    error = "Transform Failure"

    def __init__(self, component_id: str, message: str):
        self.component_id = component_id
        super().__init__(message)


def error_response(exc: BaseException, debug: bool = False) -> dict:
    """Render an exception as the error envelope the request layer returns.

    Known errors keep their message. Anything else is reported as a generic
    internal error; the traceback is only attached in debug mode.
    """
    if isinstance(exc, BridgeError):
        body = {"error": exc.error, "message": exc.message, "status": exc.status}
        extra = exc.details()
        if extra:
            body["details"] = extra
    else:
        body = {"error": "Internal Server Error", "message": "Internal Server Error", "status": 500}
    if debug:
        body["message"] = str(exc) or body["message"]
        body["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body
