from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures raised by the recruitment pipeline services."""

    code = "pipeline_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class PipelineValidationError(PipelineError):
    """Bad input from the caller. Nothing was written; resubmitting with fixed input is safe."""

    code = "validation_error"


class FatalConfigurationError(PipelineError):
    """A required catalog entry is missing. Seed data bug, not a user error."""

    code = "configuration_error"


class InconsistentStateError(PipelineError):
    """The ledger does not hold the active record the operation expects."""

    code = "inconsistent_state"


class ApplicationNotFound(PipelineError):
    code = "application_not_found"
