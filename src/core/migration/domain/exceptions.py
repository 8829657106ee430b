"""Domain exceptions for the migration context."""


class InvalidRunTransition(Exception):
    """Raised when a migration run is moved out of its fixed step order."""

    pass


class RunImmutableError(Exception):
    """Raised when a migration run is changed after it was persisted."""

    pass
