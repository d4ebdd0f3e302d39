"""Exception types raised by cross-field-lib."""


class CrossFieldError(Exception):
    """Base class for all cross-field-lib errors."""


class ConfigurationError(CrossFieldError):
    """
    A wiring mistake discovered while resolving validators or loading config.

    Raised immediately to the caller and never treated as a validation
    outcome: a marker bound to a validator that cannot be constructed, a
    binding string that cannot be imported, or a config document that does
    not match the config schema.
    """
