"""Exceptions raised by the file lifecycle engine.

Every error carries the HTTP status it maps to, so the API layer can
answer with ``{"error": message}`` without knowing which component failed.

Usage:
    from beam.errors import NotFoundError

    if record is None:
        raise NotFoundError("Invalid or expired code")
"""


class BeamError(Exception):
    """Base exception for all Beam errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(BeamError):
    """Malformed or missing upload payload. No side effects."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Upload exceeded MAX_UPLOAD_BYTES."""

    status_code = 413


class NotFoundError(BeamError):
    """Code absent, expired, or its blob is missing."""

    status_code = 404


class StorageError(BeamError):
    """Blob write or read failed."""

    status_code = 500


class PersistenceError(BeamError):
    """Record store write failed."""

    status_code = 500


class CodeTakenError(PersistenceError):
    """The candidate code is held by a live record (or its blob name exists).

    Internal retry signal for the code allocator; never reaches a client.
    """

    def __init__(self, code: str):
        super().__init__(f"Code {code} is already in use")
        self.code = code


class CodeSpaceExhaustedError(PersistenceError):
    """No free code found within the allowed number of attempts."""

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a retrieval code after {attempts} attempts")
        self.attempts = attempts
