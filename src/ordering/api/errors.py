"""Render TypedError as ``{"code", "message"}`` with the matching HTTP status."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from shared.errors import TypedError


async def typed_error_handler(request: Request, exc: TypedError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=exc.code.http_status,
        content={"code": exc.code.value, "message": exc.message},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(TypedError, typed_error_handler)
