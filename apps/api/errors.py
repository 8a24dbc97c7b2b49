# apps/api/errors.py
from typing import Optional


class FeedError(Exception):
    """Base class for failures surfaced by the video feed."""


class InvalidIdentifier(FeedError):
    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"invalid {field}: {value!r}")


class DecodeError(FeedError):
    def __init__(self, message: str, *, column: Optional[str] = None):
        self.column = column
        super().__init__(message)


class StoreUnavailable(FeedError):
    pass


class InvalidVoteValue(FeedError):
    def __init__(self, value: object):
        self.value = value
        super().__init__("value must be -1, 0, or 1")
