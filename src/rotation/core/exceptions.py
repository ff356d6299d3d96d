"""Exception handlers with request_id in responses."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.rotation.core.logging import get_logger
from src.rotation.core.retry import TransientStoreError

logger = get_logger(__name__)


class RotationHTTPException(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    def __init__(self, status_code: int, code: str, detail: str):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


def _error_body(detail: object, code: str | None = None) -> dict[str, object]:
    body: dict[str, object] = {"detail": detail, "request_id": correlation_id.get()}
    if code is not None:
        body["code"] = code
    return body


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(RotationHTTPException)
    async def rotation_exception_handler(
        request: Request, exc: RotationHTTPException
    ) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail, exc.code))

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail))

    @app.exception_handler(TransientStoreError)
    async def transient_store_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
        logger.error(
            "Store unavailable",
            operation=exc.operation,
            attempts=exc.attempts,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body("Temporary storage failure, please retry", "TRANSIENT_STORE_ERROR"),
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error"),
        )
