class AppException(Exception):
    """Base application exception."""

    pass


class JobValidationError(AppException):
    """Job name or specification failed validation before submission."""

    pass


class SubmissionError(AppException):
    """Backend rejected the execution request."""

    pass


class BackendError(AppException):
    """Backend call failed after the execution was submitted."""

    pass


class RunnerStateError(AppException):
    """Runner operation called in the wrong lifecycle state."""

    pass
