"""Error taxonomy for plugin configuration bootstrap.

Every error raised while loading or validating the plugin configuration is a
``ConfigurationError``. Each subclass carries a stable ``kind`` string so that
request handlers can report failures using the same vocabulary.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigurationError",
    "FileReadError",
    "SchemaParseError",
    "MissingFieldError",
    "InvalidValueError",
    "DecryptionError",
]


class ConfigurationError(Exception):
    """Base class for all configuration bootstrap failures."""

    kind = "configuration"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        info: dict[str, Any] = {"kind": self.kind, "error": self.message}
        if self.field:
            info["field"] = self.field
        return info


class FileReadError(ConfigurationError):
    """A required file path is unset or cannot be read."""

    kind = "file_read"

    def __init__(self, message: str, *, path: str | None = None, field: str | None = None):
        super().__init__(message, field=field)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        info = super().to_dict()
        if self.path is not None:
            info["path"] = self.path
        return info


class SchemaParseError(ConfigurationError):
    """The configuration document cannot be decoded into the expected structure."""

    kind = "schema_parse"


class MissingFieldError(ConfigurationError):
    """A required value is absent."""

    kind = "missing_field"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"no value set for {field}", field=field)


class InvalidValueError(ConfigurationError):
    """A value is present but outside the allowed range or set."""

    kind = "invalid_value"

    def __init__(self, field: str, value: Any, message: str | None = None):
        super().__init__(message or f"invalid value {value!r} configured for {field}", field=field)
        self.value = value


class DecryptionError(ConfigurationError):
    """An encrypted secret could not be recovered."""

    kind = "decryption"
