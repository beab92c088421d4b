"""Domain errors raised by the order lifecycle engine."""

from __future__ import annotations


class OrderError(Exception):
    """Base class for lifecycle errors reported to the caller."""


class ValidationError(OrderError, ValueError):
    """Malformed input, for example an empty item list or non-positive quantity."""


class ConflictError(OrderError):
    """A conditional transition matched no row: race lost, wrong status or assignee, unknown id."""


class AuthorizationError(OrderError):
    """The acting identity is not allowed to perform the operation on this order."""
