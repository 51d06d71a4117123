"""Exceptions raised by the persistence and configuration layers."""


class PersistenceError(IOError):
    """A profile, log or report artifact could not be read or written."""


class ConfigurationError(ValueError):
    """Configuration data does not match the profile schema."""
