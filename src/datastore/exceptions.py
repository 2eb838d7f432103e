"""Exception hierarchy for the datastore importer.

    DatastoreError
    +-- ConfigurationError     collaborator or option rejected at construction
    +-- StateError             serialized task state cannot be decoded
    +-- RowSourceError         resource could not be read as rows
        +-- ResourceNotFoundError
        +-- InvalidContentError

``ConfigurationError`` and ``StateError`` are raised to the caller.
``RowSourceError`` subclasses are caught by ``ImportTask.run()`` and recorded
in its ``Result``.
"""


class DatastoreError(Exception):
    """Base class for all datastore errors."""


class ConfigurationError(DatastoreError):
    """A collaborator does not satisfy its capability contract, or an option is invalid."""


class StateError(DatastoreError):
    """Serialized import state is malformed or incomplete."""


class RowSourceError(DatastoreError):
    """The row source could not produce rows for a resource."""

    reason = "row source failure"

    def __init__(self, location: str, detail: str | None = None):
        self.location = location
        self.detail = detail
        message = f"{self.reason}: {location}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ResourceNotFoundError(RowSourceError):
    reason = "resource not found"


class InvalidContentError(RowSourceError):
    reason = "invalid file content"
