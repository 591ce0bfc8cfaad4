from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from app.core.logging import get_logger
from app.schemas.common import ErrorEnvelope


class ApiError(Exception):
    """Erro de negócio renderizado como {success: false, error?, errors?}."""

    def __init__(
        self,
        status_code: int,
        error: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(error or "; ".join(errors or []))
        self.status_code = status_code
        self.error = error
        self.errors = errors


def _envelope(status_code: int, error: str | None, errors: list[str] | None = None):
    body = ErrorEnvelope(error=error, errors=errors).model_dump(exclude_none=True)
    return JSONResponse(body, status_code=status_code)


async def api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    return _envelope(exc.status_code, exc.error, exc.errors)


async def validation_error_handler(
    _: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _envelope(422, "Invalid request", messages)


async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _envelope(404, "Not Found")
    return _envelope(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    get_logger().exception("request.unhandled", path=request.url.path)
    return _envelope(500, "Something went wrong. Please try again.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
