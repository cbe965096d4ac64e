"""Exceptions raised by the metrics core.

Two failure modes matter to callers:

  ConflictError   — a metric name is registered twice with definitions that
                    cannot both be true (different kind, labels, or buckets).
                    This is a programming error; it surfaces at startup when
                    the app factory registers its metric inventory.

  InvalidArgument — a recording call was given something it cannot accept
                    (negative counter delta, NaN observation, wrong tag keys).
                    The call is rejected before any state is touched.

InvalidArgument also subclasses ValueError so code that already guards
against ValueError around numeric input keeps working.
"""

from __future__ import annotations


class MetricsError(Exception):
    """Base class for all metrics core errors."""


class ConflictError(MetricsError):
    """A metric name is already registered with an incompatible definition."""


class InvalidArgument(MetricsError, ValueError):
    """A registration or recording call received an unusable argument."""
