"""Error types raised by the decision engine and its collaborators."""


class DecisionError(Exception):
    """Base error for decision tree operations."""
    pass


class UpstreamError(DecisionError):
    """Completion service unreachable, returned a failure status, or no choices."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(DecisionError):
    """Persistence read, write or delete failed."""
    pass


class InvalidOptionError(DecisionError):
    """Selected option is not offered by the current node."""

    def __init__(self, message: str, option_id: str = None):
        super().__init__(message)
        self.option_id = option_id


class InvalidStateError(DecisionError):
    """The tree's current node pointer does not resolve to a node."""
    pass
