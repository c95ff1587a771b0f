"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class IntegrationError(AppError):
    """External integration call failure."""


class TransportError(IntegrationError):
    """Remote authority could not be reached, timed out, or answered with an error status."""


class AuthenticationError(IntegrationError):
    """Authentication was rejected or returned no usable token."""


class DeserializationError(IntegrationError):
    """Remote response body could not be parsed."""


class DuplicateWorkflowIdError(DeserializationError):
    """Remote workflow list contains the same id more than once."""

    def __init__(self, duplicate_ids: list[int]):
        self.duplicate_ids = sorted(set(duplicate_ids))
        super().__init__(f"Remote workflow list contains duplicate ids: {self.duplicate_ids}")


class PersistenceError(AppError):
    """Storage commit failure. Nothing from the failed unit of work was kept."""
