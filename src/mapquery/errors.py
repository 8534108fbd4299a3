"""
Exception hierarchy for mapquery.

Every error raised by encode/decode derives from MapQueryError, so callers
can catch the whole family with a single except clause.

Wrapping errors (ParseError, CompositeError, FieldError) keep the original
failure both as ``__cause__`` (via ``raise ... from``) and as ``.cause``.
"""

from typing import Optional


class MapQueryError(Exception):
    """Base class for all mapquery errors."""
    pass


class InvalidTargetError(MapQueryError):
    """Raised when the top-level value is not (or does not hold) a record."""
    pass


class UnaddressableTargetError(MapQueryError):
    """Raised when a decode target cannot be written to (e.g. frozen)."""
    pass


class UnsupportedKindError(MapQueryError):
    """Raised when a field's type has no coder."""

    def __init__(self, kind: str):
        super().__init__(f"unsupported field kind: {kind}")
        self.kind = kind


class ParseError(MapQueryError):
    """Raised when a scalar literal is malformed."""

    def __init__(self, value: str, cause: Exception):
        super().__init__(f"cannot parse {value!r}: {cause}")
        self.value = value
        self.cause = cause


class CompositeError(MapQueryError):
    """Raised when a JSON or timestamp document cannot be coded."""

    def __init__(self, cause: Exception, value: Optional[str] = None):
        if value is None:
            super().__init__(str(cause))
        else:
            super().__init__(f"cannot decode {value!r}: {cause}")
        self.value = value
        self.cause = cause


class FieldError(MapQueryError):
    """Annotates a decode failure with the key of the offending field."""

    def __init__(self, key: str, cause: Exception):
        super().__init__(f"field {key!r}: {cause}")
        self.key = key
        self.cause = cause


class ConfigError(MapQueryError):
    """Raised when a codec configuration is malformed."""
    pass
