from __future__ import annotations


class ParseError(ValueError):
    """Raised when an uploaded spreadsheet cannot be decoded or parsed."""


class NotFoundError(LookupError):
    """Raised when a resource does not exist or belongs to another user."""


class DispatchError(RuntimeError):
    """Raised when the workflow engine webhook could not accept a job."""

    def __init__(self, message: str, *, job_id: str = "") -> None:
        super().__init__(message)
        self.job_id = str(job_id or "")
