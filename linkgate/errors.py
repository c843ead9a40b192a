from http import HTTPStatus


class LinkGateError(Exception):
    """Base for failures that map onto a client-visible HTTP response."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    detail: str = "Internal Server Error"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(LinkGateError):
    status_code = HTTPStatus.BAD_REQUEST
    detail = "Invalid request"


class DuplicateUsername(LinkGateError):
    status_code = HTTPStatus.BAD_REQUEST
    detail = "Username already exists"


class InvalidCredentials(LinkGateError):
    status_code = HTTPStatus.FORBIDDEN
    detail = "Invalid username or password"


class MissingToken(LinkGateError):
    status_code = HTTPStatus.UNAUTHORIZED
    detail = "No token provided"


class InvalidToken(LinkGateError):
    status_code = HTTPStatus.UNAUTHORIZED
    detail = "Invalid token"


class AccessDenied(LinkGateError):
    status_code = HTTPStatus.FORBIDDEN
    detail = "Access denied, admin only"


class NotFound(LinkGateError):
    status_code = HTTPStatus.NOT_FOUND
    detail = "Link not found"


class DuplicateCode(LinkGateError):
    status_code = HTTPStatus.CONFLICT
    detail = "Short code already in use"


class AllocationExhausted(LinkGateError):
    detail = "Could not allocate a short code"


# Transient; the client only ever sees the generic message
class StoreUnavailable(LinkGateError):
    pass
