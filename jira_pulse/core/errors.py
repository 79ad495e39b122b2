"""Exception types raised by the analytics engine."""

from __future__ import annotations


class PulseError(Exception):
    """Base class for jira_pulse errors."""


class InvalidRequestError(PulseError):
    """A request is missing required input and cannot be served."""


class CacheWriteError(PulseError):
    """The persistent store rejected a cache write."""
