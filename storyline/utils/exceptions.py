from functools import wraps
from typing import Any, Callable, TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

F = TypeVar("F", bound=Callable[..., Any])


def rollback_on_exception(func: F) -> F:
    @wraps(func)
    def wrapper(*args, **kwargs):
        db: Session = kwargs.get("db") or next((a for a in args if isinstance(a, Session)), None)
        # If not found, check if first arg is self and has .db
        if not db and args:
            self_obj = args[0]
            db = getattr(self_obj, "db", None)
        if not db:
            raise ValueError("SQLAlchemy session (db: Session) is required")

        try:
            return func(*args, **kwargs)
        except Exception:
            db.rollback()
            raise

    return wrapper  # type: ignore


class ProjectNotFoundException(HTTPException):
    def __init__(self, project_id: int):
        super().__init__(status_code=404, detail={"type": "PROJECT_NOT_FOUND", "message": f"Project not found for project_id {project_id}"})


class OutlineEntryNotFoundException(HTTPException):
    def __init__(self, outline_id: int):
        super().__init__(status_code=404, detail={"type": "OUTLINE_ENTRY_NOT_FOUND", "message": f"Outline entry not found for outline_id {outline_id}"})


class ChapterNotFoundException(HTTPException):
    def __init__(self, outline_id: int):
        super().__init__(status_code=404, detail={"type": "CHAPTER_NOT_FOUND", "message": f"No chapter has been generated for outline_id {outline_id}"})


class SequenceViolation(HTTPException):
    def __init__(self, outline_id: int, blocking_outline_id: int):
        self.outline_id = outline_id
        self.blocking_outline_id = blocking_outline_id
        super().__init__(
            status_code=409,
            detail={
                "type": "SEQUENCE_VIOLATION",
                "message": f"Outline entry {outline_id} is locked until outline entry {blocking_outline_id} is complete",
                "blocking_outline_id": blocking_outline_id,
            },
        )


class GenerationInProgress(HTTPException):
    def __init__(self, project_id: int, active_outline_id: int | None):
        self.active_outline_id = active_outline_id
        super().__init__(
            status_code=409,
            detail={
                "type": "GENERATION_IN_PROGRESS",
                "message": f"Project {project_id} already has an active generation for outline entry {active_outline_id}",
                "active_outline_id": active_outline_id,
            },
        )


class InsufficientFunds(HTTPException):
    def __init__(self, user_id: str, required: int, balance: int):
        self.required = required
        self.balance = balance
        super().__init__(
            status_code=402,
            detail={
                "type": "INSUFFICIENT_FUNDS",
                "message": f"User {user_id} needs {required} credits but has {balance}",
                "required": required,
                "balance": balance,
            },
        )


class InvalidCreditAmount(HTTPException):
    def __init__(self, amount):
        super().__init__(status_code=400, detail={"type": "INVALID_CREDIT_AMOUNT", "message": f"Credit amount must be a positive integer, got {amount!r}"})


class PreconditionError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=422, detail={"type": "PRECONDITION_FAILED", "message": message})


class GenerationStreamError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=502, detail={"type": "GENERATION_STREAM_ERROR", "message": message})


class ExtractionError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=502, detail={"type": "EXTRACTION_FAILED", "message": message})
