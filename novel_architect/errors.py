"""Error taxonomy shared by the session and its collaborators."""


class ArchitectError(Exception):
    """Base class for all novel-architect errors."""


class SuggestionNotFound(ArchitectError):
    """A suggested fragment no longer occurs in the current draft."""

    def __init__(self, snippet: str):
        super().__init__("未在编辑器中找到该片段 (可能已被修改)")
        self.snippet = snippet


class PreconditionError(ArchitectError):
    """An operation was requested before its inputs were ready."""


class RemoteFailure(ArchitectError):
    """The generator rejected a call or returned unusable data."""


class PersistenceFailure(ArchitectError):
    """The snapshot store could not be read or written."""
