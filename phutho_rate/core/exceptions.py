from typing import Any, Dict, Optional


class RateError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ScopeError(RateError):
    """Submission attempted outside the cycle's open window or the caller's scope."""

    def __init__(self, message: str, state: str | None = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CYCLE_NOT_OPEN" if state else "OUT_OF_SCOPE",
            details={"state": state} if state else None,
        )
        self.state = state


class DuplicateSubmissionError(RateError):
    def __init__(self, evaluator_id, evaluatee_id, cycle_id):
        super().__init__(
            message="This colleague has already been evaluated in this cycle",
            status_code=409,
            error_code="DUPLICATE_SUBMISSION",
            details={
                "evaluator_id": str(evaluator_id),
                "evaluatee_id": str(evaluatee_id),
                "cycle_id": str(cycle_id),
            },
        )


class IncompleteConfigurationError(RateError):
    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Cycle is not fully configured yet (missing: {', '.join(missing)})",
            status_code=409,
            error_code="INCOMPLETE_CONFIGURATION",
            details={"missing": missing},
        )


class InvalidEvaluationError(RateError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="INVALID_EVALUATION",
            details=details,
        )


class InvalidCycleError(RateError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="INVALID_CYCLE",
            details=details,
        )


class NotFoundError(RateError):
    def __init__(self, entity: str):
        super().__init__(
            message=f"{entity} not found",
            status_code=404,
            error_code="NOT_FOUND",
        )


class ForbiddenError(RateError):
    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message=message, status_code=403, error_code="FORBIDDEN")


class DataFetchError(RateError):
    def __init__(self, what: str):
        super().__init__(
            message=f"Could not load {what}, please try again",
            status_code=503,
            error_code="DATA_FETCH_FAILED",
            details={"retryable": True},
        )
