"""Exceptions raised by the SLA validation pipeline.

Missing metric fields are never errors (they fall back to zero). Only
structural problems propagate: an unparseable payload or an incomplete
threshold configuration. A failed SLA check is a normal result, not an error.
"""


class SlaError(Exception):
    """Base class for pipeline failures."""


class MalformedInputError(SlaError):
    """The load-test result payload is not valid structured data."""


class ConfigurationError(SlaError):
    """The SLA configuration is unreadable or lacks a mandatory threshold."""


class StorageUnavailableError(SlaError):
    """The run history file could not be written."""


class LoadTestError(SlaError):
    """The load generator failed or produced no summary."""
