# /interviewer/utils/exceptions.py

from typing import Optional

# Typed failures raised by the services. Routes never build HTTP errors for
# these themselves: the handler registered in main.py maps each one to its
# status code and a stable error_code.


class InterviewError(Exception):
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class ValidationError(InterviewError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFound(InterviewError):
    status_code = 404
    error_code = "NOT_FOUND"


class GuideNotFound(NotFound):
    error_code = "GUIDE_NOT_FOUND"

    def __init__(self, message: str = "Guide not found"):
        super().__init__(message)


class VersionNotFound(NotFound):
    error_code = "VERSION_NOT_FOUND"

    def __init__(self, message: str = "Version not found"):
        super().__init__(message)


class NoActiveVersion(NotFound):
    error_code = "NO_ACTIVE_VERSION"

    def __init__(self, message: str = "No active version found for guide"):
        super().__init__(message)


class SessionNotFound(NotFound):
    error_code = "SESSION_NOT_FOUND"

    def __init__(self, message: str = "Session not found"):
        super().__init__(message)


class ConflictError(InterviewError):
    status_code = 409
    error_code = "CONFLICT"


class AlreadyComplete(ConflictError):
    error_code = "ALREADY_COMPLETE"

    def __init__(self, message: str = "Session is already complete"):
        super().__init__(message)


class QuestionMismatch(ConflictError):
    error_code = "QUESTION_MISMATCH"

    def __init__(self, message: str = "Invalid question ID"):
        super().__init__(message)


class ConcurrentUpdate(ConflictError):
    error_code = "CONCURRENT_UPDATE"

    def __init__(self, message: str = "Session was updated by another request"):
        super().__init__(message)


class QualityRejected(InterviewError):
    status_code = 422
    error_code = "ANSWER_REJECTED"


class UpstreamFailure(InterviewError):
    status_code = 502
    error_code = "UPSTREAM_FAILURE"


class IntegrityViolation(InterviewError):
    status_code = 500
    error_code = "INTEGRITY_VIOLATION"
