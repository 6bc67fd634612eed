from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("converter.errors")


class ConverterError(Exception):
    """Base for failures the conversion pipeline reports to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ConverterError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidAmount(InvalidInput):
    pass


class InvalidCurrency(InvalidInput):
    # Malformed code in a page path reads as "no such page".
    status_code = status.HTTP_404_NOT_FOUND


class RateNotFound(ConverterError):
    status_code = status.HTTP_404_NOT_FOUND


class ComputationError(RateNotFound):
    pass


class TemplateUnavailable(ConverterError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamUnavailable(ConverterError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def converter_error_handler(request: Request, exc: ConverterError):  # type: ignore
    logger.info(
        "request rejected status=%s error=%s path=%s",
        exc.status_code,
        type(exc).__name__,
        request.url.path,
    )
    return PlainTextResponse(exc.message, status_code=exc.status_code)


def not_found_handler(request: Request, exc):  # type: ignore
    if getattr(exc, "status_code", 404) != 404:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "detail": f"No route for {request.method} {request.url.path}",
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return PlainTextResponse(
        f"Error: {exc}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
