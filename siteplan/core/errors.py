"""Translation of engine errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from siteplan.scheduling.errors import ErrorKind, SchedulingError

# Starlette renamed the 422 constant; the literal works on every release.
HTTP_422_UNPROCESSABLE = 422

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INTERVAL: HTTP_422_UNPROCESSABLE,
    ErrorKind.STALE_VERSION: status.HTTP_409_CONFLICT,
    ErrorKind.QUOTA_EXCEEDED: HTTP_422_UNPROCESSABLE,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND[exc.kind], detail=exc.to_detail())
