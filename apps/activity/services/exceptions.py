"""Domain-specific exceptions for the activity feed."""


class ActivityServiceError(Exception):
    """Base exception for activity services."""
    pass


class ActivityAccessDeniedError(ActivityServiceError):
    """Raised when a user reads the feed of a group they do not belong to."""
    pass
