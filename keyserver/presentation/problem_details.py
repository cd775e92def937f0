"""RFC 7807 Problem Details responses."""

from typing import Any, Final

from pydantic import BaseModel, Field

PROBLEM_TYPE_BASE: Final = "https://keyserver.local/problems"


class ErrorCodes:
    """Stable machine-readable error codes."""

    VALIDATION_FAILED: Final = "validation_failed"
    KEY_MISSING: Final = "key_missing"
    NO_VALID_KEY: Final = "no_valid_key"
    INVALID_THRESHOLD: Final = "invalid_threshold"
    INVALID_TEMPLATE: Final = "invalid_template"
    KEY_NOT_FOUND: Final = "key_not_found"
    NO_FREE_KEY: Final = "no_free_key"
    STORE_UNAVAILABLE: Final = "store_unavailable"
    INTERNAL_ERROR: Final = "internal_error"


class ProblemDetail(BaseModel):
    type: str = Field(description="URI identifying the problem type")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(default=None, description="Explanation of this case")
    instance: str | None = Field(default=None, description="Request path")
    code: str | None = Field(default=None, description="Machine-readable reason")
    errors: list[dict[str, Any]] | None = Field(
        default=None, description="Field-level validation errors"
    )


class ProblemDetailFactory:
    """Builders for the problem types this API returns."""

    @staticmethod
    def validation_failed(
        detail: str,
        instance: str | None = None,
        code: str = ErrorCodes.VALIDATION_FAILED,
        field_errors: list[dict[str, Any]] | None = None,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_TYPE_BASE}/validation-failed",
            title="Validation Failed",
            status=400,
            detail=detail,
            instance=instance,
            code=code,
            errors=field_errors,
        )

    @staticmethod
    def not_found(
        detail: str, instance: str | None = None, code: str = ErrorCodes.KEY_NOT_FOUND
    ) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_TYPE_BASE}/not-found",
            title="Not Found",
            status=404,
            detail=detail,
            instance=instance,
            code=code,
        )

    @staticmethod
    def internal_server_error(
        detail: str,
        instance: str | None = None,
        code: str = ErrorCodes.INTERNAL_ERROR,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_TYPE_BASE}/internal-error",
            title="Internal Server Error",
            status=500,
            detail=detail,
            instance=instance,
            code=code,
        )
