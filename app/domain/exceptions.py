"""
Domain exceptions.

Services raise these internally while validating a use case and convert
them to an OperationResult at their public boundary, so callers never
see a raw exception from a mutating operation.
"""

from .value_objects import FailureKind


class DomainError(Exception):
    """Base class for refusals and failures inside a use case."""

    kind: FailureKind = FailureKind.UPSTREAM

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(DomainError):
    """A referenced book, user or request id does not resolve."""

    kind = FailureKind.NOT_FOUND


class NotAuthorizedError(DomainError):
    """The caller is not allowed to perform the operation."""

    kind = FailureKind.UNAUTHORIZED


class ConflictError(DomainError):
    """The operation clashes with the current state (duplicate, bad transition)."""

    kind = FailureKind.CONFLICT

