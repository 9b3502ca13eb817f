"""Fatal precondition errors raised before any assignment work starts."""

from __future__ import annotations


class AllocationError(ValueError):
    """Base class for inputs that reject a whole generation run."""


class InvalidRange(AllocationError):
    """End date precedes start date."""


class NoAvailableDoctors(AllocationError):
    """Doctor pool is empty once excluded doctors are removed."""


class NoStations(AllocationError):
    """Station list is empty."""


class DuplicateIdentifier(AllocationError):
    """The same doctor or station id appears more than once in an input list."""
