"""Error taxonomy shared by the services, the HTTP layer and the client synchronizer."""


class FamilyHubError(Exception):
    """Base class. `status_code` is what the HTTP layer answers with."""

    status_code = 500
    code = "error"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFound(FamilyHubError):
    status_code = 404
    code = "not_found"


class Conflict(FamilyHubError):
    status_code = 409
    code = "conflict"


class Unauthorized(FamilyHubError):
    status_code = 401
    code = "unauthorized"


class ValidationError(FamilyHubError):
    status_code = 400
    code = "validation_error"


class UpstreamUnavailable(FamilyHubError):
    status_code = 503
    code = "upstream_unavailable"
    retryable = True


class CodeSpaceExhausted(FamilyHubError):
    status_code = 503
    code = "code_space_exhausted"


_BY_CODE = {
    cls.code: cls
    for cls in (NotFound, Conflict, Unauthorized, ValidationError, UpstreamUnavailable, CodeSpaceExhausted)
}

_BY_STATUS = {
    404: NotFound,
    409: Conflict,
    401: Unauthorized,
    400: ValidationError,
    422: ValidationError,
}


def error_from_response(status_code: int, body: dict | None) -> FamilyHubError:
    """Rebuild a typed error from an HTTP error response."""
    body = body or {}
    detail = body.get("detail")
    if isinstance(detail, list):
        # FastAPI request validation output
        message = "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict)) or "Invalid request"
    else:
        message = str(detail or body.get("error") or f"HTTP {status_code}")

    cls = _BY_CODE.get(body.get("error", ""))
    if cls is None:
        cls = _BY_STATUS.get(status_code, UpstreamUnavailable if status_code >= 500 else ValidationError)
    return cls(message)


def from_schema_error(exc) -> ValidationError:
    """Convert a pydantic ValidationError into ours, keeping the first message."""
    errors = exc.errors()
    if not errors:
        return ValidationError("Invalid input")
    first = errors[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid input")
    return ValidationError(f"{where}: {message}" if where else message)
