"""Centralized error handling for the presentation layer."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.exceptions import (
    DomainError,
    KeyNotFoundError,
    NoFreeKeyError,
    StoreIOError,
    ValidationError,
)
from .problem_details import ErrorCodes, ProblemDetail, ProblemDetailFactory


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


def handle_domain_error(error: DomainError, request: Request) -> JSONResponse:
    """Convert domain errors to problem detail responses."""
    instance = str(request.url.path)
    problem: ProblemDetail

    if isinstance(error, ValidationError):
        problem = ProblemDetailFactory.validation_failed(
            detail=str(error), instance=instance, code=error.code
        )
    elif isinstance(error, KeyNotFoundError):
        problem = ProblemDetailFactory.not_found(detail=str(error), instance=instance)
    elif isinstance(error, NoFreeKeyError):
        problem = ProblemDetailFactory.not_found(
            detail=str(error), instance=instance, code=ErrorCodes.NO_FREE_KEY
        )
    elif isinstance(error, StoreIOError):
        problem = ProblemDetailFactory.internal_server_error(
            detail="The key store could not be written. Please try again.",
            instance=instance,
            code=ErrorCodes.STORE_UNAVAILABLE,
        )
    else:
        problem = ProblemDetailFactory.internal_server_error(
            detail="An unexpected error occurred. Please try again.",
            instance=instance,
        )

    return _problem_response(problem)


def handle_request_validation_error(
    error: RequestValidationError, request: Request
) -> JSONResponse:
    """Convert request body/query validation errors to a 400 problem detail."""
    field_errors = []
    for item in error.errors():
        field_name = ".".join(str(loc) for loc in item["loc"] if loc != "body")
        field_errors.append(
            {
                "field": field_name or "unknown",
                "code": item["type"],
                "message": item["msg"],
            }
        )

    problem = ProblemDetailFactory.validation_failed(
        detail="Request validation failed",
        instance=str(request.url.path),
        field_errors=field_errors,
    )
    return _problem_response(problem)


def handle_unexpected_error(request: Request) -> JSONResponse:
    problem = ProblemDetailFactory.internal_server_error(
        detail="An unexpected error occurred. Please try again.",
        instance=str(request.url.path),
    )
    return _problem_response(problem)
