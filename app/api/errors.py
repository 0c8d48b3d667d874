"""Translation of application errors into HTTP errors."""

from fastapi import HTTPException

from app.core.exceptions import EchoAuditError


def to_http_exception(exc: EchoAuditError) -> HTTPException:
    """Build the HTTPException reported for an application error."""
    return HTTPException(status_code=exc.status_code, detail=str(exc))
