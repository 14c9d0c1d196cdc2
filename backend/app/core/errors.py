# backend/app/core/errors.py

from enum import Enum


class JobError(Exception):
    """
    Base for every error the job engine raises on purpose.

    `message` is what the client sees (HTTP body or the job's `error` field),
    so it must never carry credentials, assertions or bearer tokens.
    """

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# REQUEST-SIDE ERRORS
# ---------------------------------------------------------------------------
class InputValidationError(JobError):
    status_code = 400


class NotFoundError(JobError):
    status_code = 404


# ---------------------------------------------------------------------------
# GENERATION ERRORS (end up in the job document)
# ---------------------------------------------------------------------------
class GenerationErrorKind(str, Enum):
    MALFORMED_OUTPUT = "malformed_output"
    SCHEMA_VIOLATION = "schema_violation"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"


class GenerationError(JobError):
    status_code = 502

    def __init__(self, kind: GenerationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


# ---------------------------------------------------------------------------
# PERSISTENCE ERRORS
# ---------------------------------------------------------------------------
class PersistenceError(JobError):
    status_code = 500


class TokenMintError(PersistenceError):
    pass
