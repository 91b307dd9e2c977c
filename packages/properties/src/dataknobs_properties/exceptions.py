"""Exception hierarchy for the properties package.

This module defines exception types for the properties package, built on
the common exception framework from dataknobs_common. All errors raised by
the package derive from :class:`PropertiesError`. Errors that correspond to
a standard Python category also inherit from the matching builtin so callers
can catch them either way.

Example:
    ```python
    from dataknobs_properties import PropertyStore, InvalidValueError

    store = PropertyStore()
    store.set("pool.size", "ten")
    try:
        store.get_int("pool.size", 4)
    except InvalidValueError as e:
        print(e.context["key"])  # 'pool.size'
    ```
"""

from dataknobs_common.exceptions import (
    ConfigurationError,
    DataknobsError,
    NotFoundError,
    ResourceError,
    SerializationError,
    ValidationError,
)


class PropertiesError(DataknobsError):
    """Base exception for the properties package."""

    pass


class InvalidValueError(PropertiesError, ValidationError, ValueError):
    """Raised when a stored value cannot be parsed as the requested type."""

    def __init__(self, key: str | None, value: str | None, expected: str):
        message = f"Invalid {expected} value {value!r}"
        if key is not None:
            message += f" for property '{key}'"
        super().__init__(
            message,
            context={"key": key, "value": value, "expected": expected},
        )


class InvalidArgumentError(PropertiesError, ValidationError, ValueError):
    """Raised when a caller supplies an invalid argument (e.g. a null name)."""

    pass


class PropertyNotFoundError(PropertiesError, NotFoundError, LookupError):
    """Raised when a named property is required but absent."""

    def __init__(self, key: str):
        super().__init__(f"Property {key} not found", context={"key": key})


class SubstitutionError(PropertiesError, ConfigurationError):
    """Raised when variable substitution exceeds the maximum depth."""

    pass


class ResourceUnavailableError(PropertiesError, ResourceError):
    """Raised when a configuration resource cannot be opened."""

    pass


class DocumentParseError(PropertiesError, SerializationError):
    """Raised when a configuration document is malformed."""

    pass


class TypeResolutionError(PropertiesError, NotFoundError, LookupError):
    """Raised when a type name cannot be resolved to a Python type."""

    pass


class CredentialError(PropertiesError, ConfigurationError):
    """Raised when a credential provider cannot be created or read."""

    pass


class ResourceTypeError(PropertiesError, ConfigurationError):
    """Raised when resource type definitions are inconsistent."""

    pass


__all__ = [
    "PropertiesError",
    "InvalidValueError",
    "InvalidArgumentError",
    "PropertyNotFoundError",
    "SubstitutionError",
    "ResourceUnavailableError",
    "DocumentParseError",
    "TypeResolutionError",
    "CredentialError",
    "ResourceTypeError",
]
