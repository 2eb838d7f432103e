"""Outcome of an import pass."""

from dataclasses import dataclass
from enum import Enum


class Status(str, Enum):
    STOPPED = "stopped"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class Result:
    """Status of an import task, with a message only when it failed."""

    status: Status = Status.STOPPED
    error_message: str | None = None

    def __post_init__(self):
        if (self.status is Status.ERROR) != (self.error_message is not None):
            raise ValueError(
                f"error_message must be set if and only if status is ERROR "
                f"(got status={self.status.value}, error_message={self.error_message!r})"
            )

    @classmethod
    def stopped(cls) -> "Result":
        return cls(Status.STOPPED)

    @classmethod
    def in_progress(cls) -> "Result":
        return cls(Status.IN_PROGRESS)

    @classmethod
    def done(cls) -> "Result":
        return cls(Status.DONE)

    @classmethod
    def error(cls, message: str) -> "Result":
        return cls(Status.ERROR, message)

    @property
    def is_terminal(self) -> bool:
        return self.status in (Status.DONE, Status.ERROR)
