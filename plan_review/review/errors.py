from __future__ import annotations


class ReviewError(Exception):
    """Base class for errors reported back to the caller of a review operation."""


class NotFoundError(ReviewError):
    pass


class InvalidInputError(ReviewError):
    pass


class ConflictError(ReviewError):
    pass
