"""DataKnobs Properties Package

A layered configuration-resolution engine: ordered XML configuration
documents, final (non-overridable) keys, ``${name}`` references, per-key
provenance and typed accessors.
"""

from .conversions import SocketAddress
from .credentials import (
    CredentialProvider,
    CredentialProviderFactory,
    EnvironmentCredentialProvider,
    JsonFileCredentialProvider,
    get_credential_provider_factory,
)
from .durations import TimeUnit
from .exceptions import (
    CredentialError,
    DocumentParseError,
    InvalidArgumentError,
    InvalidValueError,
    PropertiesError,
    PropertyNotFoundError,
    ResourceTypeError,
    ResourceUnavailableError,
    SubstitutionError,
    TypeResolutionError,
)
from .loader import DocumentLoader, LoadedProperty
from .ranges import IntegerRanges
from .redaction import Redactor
from .registry import (
    DefaultResourceRegistry,
    DeprecationRegistry,
    get_default_resource_registry,
    get_deprecation_registry,
)
from .resolvers import ImportResolver, Resolver
from .resource_types import ResourceInformation, ResourceTypeCatalog
from .resources import FileResource, NamedResource, Resource, StreamResource, UriResource
from .serialization import dump_configuration, write_xml
from .store import Property, PropertyStore
from .substitution import MAX_SUBSTITUTION_DEPTH, substitute

__version__ = "0.1.0"
__all__ = [
    "PropertyStore",
    "Property",
    "TimeUnit",
    "IntegerRanges",
    "SocketAddress",
    "Redactor",
    # Resources and loading
    "Resource",
    "FileResource",
    "UriResource",
    "NamedResource",
    "StreamResource",
    "DocumentLoader",
    "LoadedProperty",
    "Resolver",
    "ImportResolver",
    # Registries
    "DeprecationRegistry",
    "DefaultResourceRegistry",
    "get_deprecation_registry",
    "get_default_resource_registry",
    # Substitution and output
    "substitute",
    "MAX_SUBSTITUTION_DEPTH",
    "write_xml",
    "dump_configuration",
    # Credentials
    "CredentialProvider",
    "CredentialProviderFactory",
    "JsonFileCredentialProvider",
    "EnvironmentCredentialProvider",
    "get_credential_provider_factory",
    # Resource types
    "ResourceInformation",
    "ResourceTypeCatalog",
    # Errors
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
