"""Layered, thread-safe property store.

A :class:`PropertyStore` aggregates properties from an ordered list of
configuration documents and programmatic ``set`` calls:

- documents are applied in registration order; later documents override
  earlier ones unless a key was declared ``final``
- values written with ``set`` form an overlay that always wins over document
  values and survives :meth:`PropertyStore.reload`
- ``${name}`` references are resolved on every read, never stored
- every key keeps the ordered list of sources that produced its value

Example:
    ```python
    store = PropertyStore()
    store.add_resource(Path("conf/site.xml"))
    store.set("db.port", "5432")

    url = store.get("db.url")            # "${db.host}:${db.port}" resolved
    timeout = store.get_time_duration("db.timeout", 30, TimeUnit.SECONDS)
    store.get_property_sources("db.port")  # ['programmatically']
    ```
"""

import logging
import os
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import (
    IO,
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Pattern,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .conversions import (
    SocketAddress,
    parse_boolean,
    parse_float,
    parse_int,
    parse_long,
    parse_long_bytes,
    parse_socket_addr,
    split_strings,
    split_trimmed,
)
from .credentials import CredentialProviderFactory, get_credential_provider_factory
from .durations import TimeUnit, format_time_duration, parse_time_duration
from .exceptions import (
    InvalidArgumentError,
    InvalidValueError,
    ResourceUnavailableError,
    TypeResolutionError,
)
from .keys import (
    CREDENTIAL_CLEAR_TEXT_FALLBACK,
    CREDENTIAL_PROVIDER_PATH,
    PROGRAMMATIC_SOURCE,
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
from .resources import DEFAULT_TIMEOUT, NamedResource, Resource, as_resource
from .serialization import dump_configuration, write_xml
from .substitution import substitute

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class Property:
    """A stored value and the sources that produced it."""

    value: str | None
    sources: Tuple[str, ...] = ()


class PropertyStore:
    """Thread-safe mapping of property names to values with provenance.

    A single reentrant lock guards the property map, the final key set, the
    overlay and the resource list. Single-key operations are atomic; bulk
    reads copy a snapshot under the lock and resolve values outside it.
    Documents are fetched and parsed before the lock is taken.
    """

    def __init__(
        self,
        other: Union["PropertyStore", None] = None,
        load_defaults: bool = False,
        resolver: Resolver | None = None,
        deprecations: DeprecationRegistry | None = None,
        default_resources: DefaultResourceRegistry | None = None,
        credential_providers: CredentialProviderFactory | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Create an empty store, a store seeded with defaults, or a clone.

        Args:
            other: Store to copy. Property data, finality, overlay, resource
                history and flags are copied; the resolver and registries are
                shared. Later changes to either store do not affect the other.
            load_defaults: Load the default resources (ignored for clones)
            resolver: Type and named-resource resolver
            deprecations: Deprecation registry (process default when None)
            default_resources: Default resource registry (process default
                when None)
            credential_providers: Factory for credential providers
            timeout: Network timeout in seconds for remote documents
        """
        self._lock = threading.RLock()
        self._props: Dict[str, Property] = {}
        self._final_names: Set[str] = set()
        self._overlay: Dict[str, Property] = {}
        self._resources: List[Resource] = []
        self._allow_null_values = False
        self._quiet_mode = True

        if other is not None:
            with other._lock:
                self._props = dict(other._props)
                self._final_names = set(other._final_names)
                self._overlay = dict(other._overlay)
                self._resources = list(other._resources)
                self._allow_null_values = other._allow_null_values
                self._quiet_mode = other._quiet_mode
            self._resolver = resolver or other._resolver
            self._deprecations = (
                deprecations if deprecations is not None else other._deprecations
            )
            self._default_resources = (
                default_resources if default_resources is not None else other._default_resources
            )
            self._credential_providers = (
                credential_providers
                if credential_providers is not None
                else other._credential_providers
            )
            self._timeout = other._timeout
            return

        self._resolver = resolver or ImportResolver()
        self._deprecations = (
            deprecations if deprecations is not None else get_deprecation_registry()
        )
        self._default_resources = (
            default_resources if default_resources is not None else get_default_resource_registry()
        )
        self._credential_providers = (
            credential_providers
            if credential_providers is not None
            else get_credential_provider_factory()
        )
        self._timeout = timeout

        if load_defaults:
            for name in self._default_resources.names():
                self.add_resource(NamedResource(name, is_default=True))

    # ------------------------------------------------------------------
    # Flags and collaborators

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    @resolver.setter
    def resolver(self, resolver: Resolver) -> None:
        self._resolver = resolver

    @property
    def deprecations(self) -> DeprecationRegistry:
        return self._deprecations

    @property
    def allow_null_values(self) -> bool:
        """Whether keys declared without a value are stored as None."""
        return self._allow_null_values

    @allow_null_values.setter
    def allow_null_values(self, value: bool) -> None:
        self._allow_null_values = value

    @property
    def quiet_mode(self) -> bool:
        """When False, document loads are logged at INFO."""
        return self._quiet_mode

    @quiet_mode.setter
    def quiet_mode(self, value: bool) -> None:
        self._quiet_mode = value

    # ------------------------------------------------------------------
    # Resources

    def add_resource(self, ref: Any) -> None:
        """Load a document and overlay its properties onto the store.

        Args:
            ref: A Resource, a path-like object, a resource name or URI
                string, raw bytes, or a readable stream

        Raises:
            ResourceUnavailableError: If the document cannot be opened
                (missing default resources are skipped)
            DocumentParseError: If the document is malformed
        """
        resource = as_resource(ref)
        if resource.reloadable:
            with self._lock:
                if resource in self._resources:
                    logger.debug(f"Ignoring already added resource {resource}")
                    return

        loaded = self._load(resource)
        if loaded is None:
            return

        with self._lock:
            if resource.reloadable and resource in self._resources:
                return
            self._resources.append(resource)
            touched = self._apply(loaded, resource)
            for name in touched:
                overlaid = self._overlay.get(name)
                if overlaid is not None:
                    self._props[name] = overlaid

    def apply_document(
        self,
        properties: Iterable[LoadedProperty],
        source: Union[Resource, str],
    ) -> None:
        """Overlay already-loaded property declarations onto the store.

        Args:
            properties: Declarations, as returned by DocumentLoader.load
            source: Resource (or locator string) the declarations came from
        """
        resource = as_resource(source) if isinstance(source, str) else source
        with self._lock:
            self._apply(list(properties), resource)

    def get_resources(self) -> List[Resource]:
        with self._lock:
            return list(self._resources)

    def reload(self) -> None:
        """Rebuild the store from its file, URI and named resources.

        Resources are reparsed in registration order and the overlay is
        reapplied afterwards. Properties that came from streams are lost.
        """
        with self._lock:
            resources = [r for r in self._resources if r.reloadable]

        documents: List[Tuple[Resource, List[LoadedProperty]]] = []
        for resource in resources:
            loaded = self._load(resource)
            if loaded is not None:
                documents.append((resource, loaded))

        with self._lock:
            self._props.clear()
            self._final_names.clear()
            for resource, loaded in documents:
                self._apply(loaded, resource)
            self._props.update(self._overlay)

    def _load(self, resource: Resource) -> List[LoadedProperty] | None:
        loader = DocumentLoader(self._resolver, self._timeout)
        try:
            loaded = loader.load(resource)
        except ResourceUnavailableError:
            if resource.is_default:
                logger.debug(f"Default resource {resource} not found, skipping")
                return None
            raise

        message = f"Loaded {len(loaded)} properties from {resource}"
        if self._quiet_mode:
            logger.debug(message)
        else:
            logger.info(message)
        return loaded

    def _apply(self, loaded: List[LoadedProperty], resource: Resource) -> Set[str]:
        # Caller holds the lock.
        touched: Set[str] = set()
        locator = resource.locator
        for prop in loaded:
            if prop.sources:
                sources = prop.sources + ((locator,) if locator else ())
            else:
                sources = (resource.source_name,)

            for name in self._deprecations.resolve(prop.name):
                if name in self._final_names:
                    existing = self._props.get(name)
                    if (
                        prop.value is not None
                        and existing is not None
                        and existing.value is not None
                        and existing.value != prop.value
                    ):
                        logger.warning(
                            f"{resource.source_name}:an attempt to override final "
                            f"parameter: {name};  Ignoring."
                        )
                    continue

                if prop.value is not None or self._allow_null_values:
                    self._props[name] = Property(prop.value, sources)
                    touched.add(name)
                if prop.is_final:
                    self._final_names.add(name)
        return touched

    # ------------------------------------------------------------------
    # Writes

    def set(self, name: str, value: str | None, source: str | None = None) -> None:
        """Set a property value.

        Writes to a final key are ignored. Writes to a deprecated key are
        applied to its replacement keys.

        Args:
            name: Property name (surrounding whitespace is removed)
            value: Property value; None only when null values are allowed
            source: Provenance tag (defaults to "programmatically")

        Raises:
            InvalidArgumentError: If name is None, or value is None and null
                values are not allowed
        """
        if name is None:
            raise InvalidArgumentError("Property name must not be null")
        name = name.strip()
        if value is None and not self._allow_null_values:
            raise InvalidArgumentError(
                f"The value of property {name} must not be null",
                context={"key": name},
            )

        source = source or PROGRAMMATIC_SOURCE
        targets = self._deprecations.resolve(name)
        deprecated = targets != (name,)
        with self._lock:
            for target in targets:
                if target in self._final_names:
                    logger.debug(f"Not setting final property {target}")
                    continue
                sources: Tuple[str, ...] = (source,)
                if deprecated:
                    sources = (source, f"because {name} is deprecated")
                prop = Property(value, sources)
                self._props[target] = prop
                self._overlay[target] = prop

    def set_if_unset(self, name: str, value: str) -> None:
        with self._lock:
            if self.get(name) is None:
                self.set(name, value)

    def unset(self, name: str) -> None:
        """Remove a property, and its replacements when it is deprecated."""
        with self._lock:
            for target in self._deprecations.resolve(name.strip()):
                self._props.pop(target, None)
                self._overlay.pop(target, None)

    def clear(self) -> None:
        """Remove all properties, finality and overlay values.

        Registered resources are remembered, so re-adding one is still a
        no-op.
        """
        with self._lock:
            self._props.clear()
            self._final_names.clear()
            self._overlay.clear()

    # ------------------------------------------------------------------
    # Raw reads

    def _raw(self, name: str) -> Tuple[bool, str | None]:
        found, result = False, None
        with self._lock:
            for target in self._deprecations.resolve(name):
                prop = self._props.get(target)
                if prop is not None:
                    found = True
                    if prop.value is not None:
                        result = prop.value
        return found, result

    def _lookup(self, name: str) -> str | None:
        value = self._raw(name)[1]
        if value is None:
            value = os.environ.get(name)
        return value

    def substitute_vars(
        self,
        value: str | None,
        name: str | None = None,
        redactor: Redactor | None = None,
    ) -> str | None:
        """Resolve ``${...}`` references in a value against this store.

        With a redactor, references to sensitive keys resolve to the mask.
        """
        if redactor is None:
            return substitute(value, self._lookup, name)
        return substitute(value, lambda ref: redactor.redact(ref, self._lookup(ref)), name)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Get a property value with references resolved.

        Args:
            name: Property name
            default: Value returned (after resolution) when the key is absent

        Returns:
            The resolved value, or the resolved default

        Raises:
            SubstitutionError: If resolution nests too deeply
        """
        raw = self._raw(name)[1]
        if raw is None:
            raw = default
        return substitute(raw, self._lookup, name)

    def get_raw(self, name: str) -> str | None:
        """Get a property value without resolving references."""
        return self._raw(name)[1]

    def get_trimmed(self, name: str, default: str | None = None) -> str | None:
        value = self.get(name)
        if value is None:
            return default
        return value.strip()

    def only_key_exists(self, name: str) -> bool:
        """Check whether a key is present but has no value."""
        found, value = self._raw(name)
        return found and value is None

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self._raw(name)[0]

    def size(self) -> int:
        with self._lock:
            return len(self._props)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        """Iterate over ``(name, raw value)`` pairs of keys that have a value."""
        with self._lock:
            items = [(k, p.value) for k, p in self._props.items()]
        for name, value in items:
            if value is not None:
                yield name, value

    def snapshot(self) -> List[Tuple[str, str | None, bool, Tuple[str, ...]]]:
        """Copy every entry as ``(name, raw value, is_final, sources)``."""
        with self._lock:
            return [
                (name, prop.value, name in self._final_names, prop.sources)
                for name, prop in self._props.items()
            ]

    def get_property_sources(self, name: str) -> List[str] | None:
        """Get the ordered sources of a key's current value, or None."""
        result = None
        with self._lock:
            for target in self._deprecations.resolve(name):
                prop = self._props.get(target)
                if prop is not None:
                    result = list(prop.sources)
        return result

    def is_final(self, name: str) -> bool:
        with self._lock:
            return name in self._final_names

    def get_final_parameters(self) -> Set[str]:
        with self._lock:
            return set(self._final_names)

    def get_props_with_prefix(self, prefix: str) -> Dict[str, str]:
        """Get resolved values of keys starting with a prefix, prefix removed."""
        result = {}
        for name, raw in self:
            if name.startswith(prefix):
                result[name[len(prefix):]] = self.substitute_vars(raw, name)
        return result

    def get_val_by_regex(self, regex: str) -> Dict[str, str]:
        """Get resolved values of keys in which the regular expression is found."""
        pattern = re.compile(regex)
        result = {}
        for name, raw in self:
            if pattern.search(name):
                result[name] = self.substitute_vars(raw, name)
        return result

    # ------------------------------------------------------------------
    # Typed accessors

    def get_int(self, name: str, default: int) -> int:
        value = self.get_trimmed(name)
        return default if value is None else parse_int(value, name)

    def set_int(self, name: str, value: int) -> None:
        self.set(name, str(value))

    def get_long(self, name: str, default: int) -> int:
        value = self.get_trimmed(name)
        return default if value is None else parse_long(value, name)

    def set_long(self, name: str, value: int) -> None:
        self.set(name, str(value))

    def get_long_bytes(self, name: str, default: int) -> int:
        """Get a byte count such as ``"64m"`` (binary prefixes k to e)."""
        value = self.get_trimmed(name)
        return default if value is None else parse_long_bytes(value, name)

    def get_float(self, name: str, default: float) -> float:
        value = self.get_trimmed(name)
        return default if value is None else parse_float(value, name)

    def set_float(self, name: str, value: float) -> None:
        self.set(name, str(value))

    get_double = get_float
    set_double = set_float

    def get_boolean(self, name: str, default: bool) -> bool:
        """Get ``true``/``false`` (any case); other content gives the default."""
        value = self.get_trimmed(name)
        if not value:
            return default
        parsed = parse_boolean(value)
        return default if parsed is None else parsed

    def set_boolean(self, name: str, value: bool) -> None:
        self.set(name, "true" if value else "false")

    def set_boolean_if_unset(self, name: str, value: bool) -> None:
        self.set_if_unset(name, "true" if value else "false")

    def get_enum(
        self,
        name: str,
        default: E | None,
        enum_cls: Type[E] | None = None,
    ) -> E | None:
        """Get an enum member by its exact name.

        Args:
            name: Property name
            default: Member returned when the key is absent
            enum_cls: Enum type; defaults to the type of ``default``

        Raises:
            InvalidArgumentError: If neither default nor enum_cls is given
            InvalidValueError: If the value is not a member name
        """
        if enum_cls is None:
            if default is None:
                raise InvalidArgumentError(
                    f"An enum type is needed to read {name}", context={"key": name}
                )
            enum_cls = type(default)
        value = self.get_trimmed(name)
        if value is None:
            return default
        try:
            return enum_cls[value]
        except KeyError as e:
            raise InvalidValueError(name, value, enum_cls.__name__) from e

    def set_enum(self, name: str, value: Enum) -> None:
        self.set(name, value.name)

    def get_time_duration(
        self,
        name: str,
        default: Union[int, str],
        unit: TimeUnit,
    ) -> int:
        """Get a duration such as ``"30s"`` converted to ``unit``.

        A value without a suffix is taken to be in ``unit``. A string default
        is parsed the same way as a stored value.
        """
        value = self.get_trimmed(name)
        if value is None:
            if isinstance(default, str):
                return parse_time_duration(default, unit, name)
            return default
        return parse_time_duration(value, unit, name)

    def set_time_duration(self, name: str, value: int, unit: TimeUnit) -> None:
        self.set(name, format_time_duration(value, unit))

    def get_range(self, name: str, default: str | None = None) -> IntegerRanges:
        return IntegerRanges(self.get(name, default), name)

    def get_socket_addr(
        self,
        name: str,
        default_address: str | None,
        default_port: int | None = None,
    ) -> SocketAddress:
        """Get a ``host`` or ``host:port`` endpoint.

        Raises:
            InvalidArgumentError: If the value is not a valid host:port
                authority
        """
        address = self.get_trimmed(name, default_address)
        if address is None:
            raise InvalidArgumentError(
                f"No address configured for {name}", context={"key": name}
            )
        return parse_socket_addr(address, default_port, name)

    def set_socket_addr(self, name: str, address: Union[SocketAddress, Tuple[str, int]]) -> None:
        self.set(name, str(SocketAddress(*address)))

    def get_pattern(self, name: str, default: Pattern[str] | None) -> Pattern[str] | None:
        """Get a compiled regular expression; empty or invalid gives the default."""
        value = self.get(name)
        if not value:
            return default
        try:
            return re.compile(value)
        except re.error as e:
            logger.warning(
                f"Regular expression '{value}' for property '{name}' not valid. "
                f"Using default: {e}"
            )
            return default

    def set_pattern(self, name: str, pattern: Pattern[str]) -> None:
        self.set(name, pattern.pattern)

    def get_strings(self, name: str, *defaults: str) -> List[str] | None:
        """Get the comma-separated items of a value, untrimmed.

        Returns:
            The items; the defaults (or None) when the key is absent or empty
        """
        value = self.get(name)
        if not value:
            return list(defaults) if defaults else None
        return split_strings(value)

    def get_string_collection(self, name: str) -> List[str]:
        return split_strings(self.get(name))

    def get_trimmed_strings(self, name: str, *defaults: str) -> List[str]:
        value = self.get(name)
        if value is None:
            return list(defaults)
        return split_trimmed(value)

    def get_trimmed_string_collection(self, name: str) -> List[str]:
        return split_trimmed(self.get(name))

    def set_strings(self, name: str, *values: str) -> None:
        self.set(name, ",".join(values))

    def get_class_by_name(self, class_name: str) -> Type[Any]:
        """Resolve a type name with this store's resolver.

        Raises:
            TypeResolutionError: If the name cannot be resolved
        """
        return self._resolver.resolve_type(class_name)

    def get_class_by_name_or_none(self, class_name: str) -> Type[Any] | None:
        try:
            return self._resolver.resolve_type(class_name)
        except TypeResolutionError:
            return None

    def get_class(
        self,
        name: str,
        default: Type[Any] | None,
        xface: Type[Any] | None = None,
    ) -> Type[Any] | None:
        """Get the type named by a property.

        Args:
            name: Property name
            default: Type returned when the key is absent
            xface: Required base class of the resolved type

        Raises:
            TypeResolutionError: If the type cannot be resolved or does not
                derive from xface
        """
        value = self.get_trimmed(name)
        cls = default if value is None else self.get_class_by_name(value)
        if cls is not None and xface is not None and not issubclass(cls, xface):
            raise TypeResolutionError(
                f"class {cls.__qualname__} not {xface.__qualname__}",
                context={"key": name, "type_name": value},
            )
        return cls

    def get_classes(self, name: str, *defaults: Type[Any]) -> List[Type[Any]]:
        names = self.get_trimmed_strings(name)
        if not names:
            return list(defaults)
        return [self.get_class_by_name(class_name) for class_name in names]

    def set_class(self, name: str, cls: Type[Any], xface: Type[Any] | None = None) -> None:
        if xface is not None and not issubclass(cls, xface):
            raise InvalidArgumentError(
                f"{cls.__qualname__} not {xface.__qualname__}", context={"key": name}
            )
        self.set(name, f"{cls.__module__}.{cls.__qualname__}")

    def get_password(self, name: str) -> str | None:
        """Get a secret from the credential providers, else the plain value.

        Every configured provider is asked for the name and its deprecation
        aliases before falling back to the resolved property value.

        Raises:
            CredentialError: If a configured provider cannot be created or read
        """
        names = [name] + self._deprecations.aliases(name)
        uris = self.get_trimmed_strings(CREDENTIAL_PROVIDER_PATH)
        for provider in self._credential_providers.get_providers(uris):
            for alias in names:
                credential = provider.get_credential(alias)
                if credential is not None:
                    return credential

        if not self.get_boolean(CREDENTIAL_CLEAR_TEXT_FALLBACK, True):
            return None
        for alias in names:
            value = self.get(alias)
            if value is not None:
                return value
        return None

    # ------------------------------------------------------------------
    # Output

    def write_xml(self, out: Union[IO[Any], str, os.PathLike], name: str | None = None) -> None:
        """Write resolved properties as a configuration document."""
        write_xml(self, out, name)

    def dump_configuration(
        self,
        out: Union[IO[Any], str, os.PathLike],
        name: str | None = None,
        fmt: str = "json",
    ) -> None:
        """Write resolved properties as JSON or YAML records."""
        dump_configuration(self, out, name, fmt)

    def __str__(self) -> str:
        with self._lock:
            return "Configuration: " + ", ".join(str(r) for r in self._resources)

    def __repr__(self) -> str:
        return f"<PropertyStore size={self.size()} resources={len(self._resources)}>"
