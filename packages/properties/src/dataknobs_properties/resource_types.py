"""Resource type catalog built from ``resource-types.*`` properties.

The catalog is a read-only consumer of a :class:`PropertyStore`. Resource
names are listed under ``resource-types`` and each may be described with
optional attributes::

    resource-types                               = gpu,fpga
    resource-types.gpu.units                     = (default "")
    resource-types.gpu.type                      = COUNTABLE (default)
    resource-types.gpu.minimum-allocation        = 0 (default)
    resource-types.gpu.maximum-allocation        = 9223372036854775807 (default)

Mandatory resources (``memory-mb`` and ``vcores`` by default) are always
present; they may be declared explicitly only with their expected units and
type.

Example:
    ```python
    catalog = ResourceTypeCatalog.from_store(store)
    catalog.names()            # ['memory-mb', 'vcores', 'gpu', 'fpga']
    catalog["gpu"].maximum_allocation
    ```
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Tuple

from .conversions import LONG_MAX, parse_long
from .exceptions import InvalidValueError, ResourceTypeError

if TYPE_CHECKING:
    from .store import PropertyStore

logger = logging.getLogger(__name__)

RESOURCE_TYPES = "resource-types"
UNITS = ".units"
TYPE = ".type"
MINIMUM_ALLOCATION = ".minimum-allocation"
MAXIMUM_ALLOCATION = ".maximum-allocation"

#: Name rejected in favour of ``memory-mb``.
RESERVED_NAME = "memory"

RESOURCE_VALUE_PATTERN = re.compile(r"^([0-9]+) ?([a-zA-Z]*)$")


class ResourceKind(Enum):
    COUNTABLE = "COUNTABLE"


@dataclass(frozen=True)
class ResourceInformation:
    """Description of one resource type."""

    name: str
    units: str = ""
    kind: ResourceKind = ResourceKind.COUNTABLE
    minimum_allocation: int = 0
    maximum_allocation: int = LONG_MAX
    value: int = 0


MEMORY_MB = ResourceInformation("memory-mb", units="Mi")
VCORES = ResourceInformation("vcores")

DEFAULT_MANDATORY_RESOURCES: Mapping[str, ResourceInformation] = {
    MEMORY_MB.name: MEMORY_MB,
    VCORES.name: VCORES,
}


class ResourceTypeCatalog:
    """Ordered, immutable collection of resource types.

    Mandatory resources come first, in the order of the mandatory mapping,
    followed by the other resources in declaration order.
    """

    def __init__(
        self,
        resources: Mapping[str, ResourceInformation],
        mandatory: Mapping[str, ResourceInformation] = DEFAULT_MANDATORY_RESOURCES,
    ) -> None:
        ordered: Dict[str, ResourceInformation] = {}
        for name in mandatory:
            if name in resources:
                ordered[name] = resources[name]
        for name, info in resources.items():
            ordered.setdefault(name, info)
        self._resources = ordered
        self._index = {name: i for i, name in enumerate(ordered)}

    @classmethod
    def from_store(
        cls,
        store: "PropertyStore",
        mandatory: Mapping[str, ResourceInformation] = DEFAULT_MANDATORY_RESOURCES,
    ) -> "ResourceTypeCatalog":
        """Build the catalog from a store's ``resource-types`` properties.

        Args:
            store: Store to read
            mandatory: Resources that must exist, keyed by name

        Returns:
            The catalog

        Raises:
            ResourceTypeError: If a resource is declared twice, uses the
                reserved name ``memory``, or redefines a mandatory resource
                with different units or type
            InvalidValueError: If an attribute value cannot be parsed
        """
        resources: Dict[str, ResourceInformation] = {}
        for name in store.get_trimmed_strings(RESOURCE_TYPES):
            prefix = f"{RESOURCE_TYPES}.{name}"
            units = store.get_trimmed(prefix + UNITS, "")
            kind_name = store.get_trimmed(prefix + TYPE, ResourceKind.COUNTABLE.value)
            try:
                kind = ResourceKind(kind_name)
            except ValueError as e:
                raise InvalidValueError(prefix + TYPE, kind_name, "resource type") from e
            minimum = store.get_long(prefix + MINIMUM_ALLOCATION, 0)
            maximum = store.get_long(prefix + MAXIMUM_ALLOCATION, LONG_MAX)

            if name in resources:
                raise ResourceTypeError(
                    f"Error in config, key '{name}' specified twice",
                    context={"resource": name},
                )
            logger.info(
                f"Adding resource type - name = {name}, units = {units}, type = {kind.value}"
            )
            resources[name] = ResourceInformation(name, units, kind, minimum, maximum)

        _check_mandatory(resources, mandatory)
        _add_mandatory(resources, mandatory)
        return cls(resources, mandatory)

    @classmethod
    def node_resources_from_store(
        cls,
        store: "PropertyStore",
        prefix: str,
        mandatory: Mapping[str, ResourceInformation] = DEFAULT_MANDATORY_RESOURCES,
    ) -> "ResourceTypeCatalog":
        """Build a catalog of resource amounts such as ``node.resource.gpu = 4``.

        Each value is ``<integer>[ ][units]``. A mandatory resource given
        without units takes its expected units.
        """
        resources: Dict[str, ResourceInformation] = {}
        for key, value in sorted(store.get_props_with_prefix(prefix).items()):
            amount, units = parse_resource_value(value, prefix + key)
            if not units and key in mandatory:
                units = mandatory[key].units
            logger.debug(f"Setting value for resource type {key} to {amount} with units {units}")
            resources[key] = ResourceInformation(key, units=units, value=amount)

        _add_mandatory(resources, mandatory)
        _check_mandatory(resources, mandatory)
        return cls(resources, mandatory)

    def names(self) -> List[str]:
        return list(self._resources)

    def index_of(self, name: str) -> int:
        """Get the position of a resource type.

        Raises:
            KeyError: If the resource is unknown
        """
        return self._index[name]

    def get(self, name: str) -> ResourceInformation | None:
        return self._resources.get(name)

    def units_of(self, name: str) -> str:
        info = self._resources.get(name)
        return info.units if info is not None else ""

    def __getitem__(self, name: str) -> ResourceInformation:
        return self._resources[name]

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[ResourceInformation]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return f"ResourceTypeCatalog({self.names()!r})"


def parse_resource_value(text: str, key: str | None = None) -> Tuple[int, str]:
    """Split ``"4"``, ``"1024Mi"`` or ``"10 G"`` into amount and units.

    Raises:
        InvalidValueError: If the text does not match ``value[ ][units]``
    """
    match = RESOURCE_VALUE_PATTERN.match(text.strip())
    if match is None:
        raise InvalidValueError(key, text, "resource value")
    return parse_long(match.group(1), key), match.group(2)


def _check_mandatory(
    resources: Dict[str, ResourceInformation],
    mandatory: Mapping[str, ResourceInformation],
) -> None:
    if RESERVED_NAME in resources:
        logger.warning(f"Attempt to define resource '{RESERVED_NAME}', but it is not allowed.")
        raise ResourceTypeError(
            f"Attempt to re-define mandatory resource '{RESERVED_NAME}'.",
            context={"resource": RESERVED_NAME},
        )

    for name, expected in mandatory.items():
        defined = resources.get(name)
        if defined is None:
            continue
        if defined.units != expected.units or defined.kind != expected.kind:
            raise ResourceTypeError(
                f"Defined mandatory resource type={name}, however its type or unit "
                f"conflicts with mandatory resource types, expected "
                f"type={expected.kind.value}, unit={expected.units}; "
                f"actual type={defined.kind.value} actual unit={defined.units}",
                context={"resource": name},
            )


def _add_mandatory(
    resources: Dict[str, ResourceInformation],
    mandatory: Mapping[str, ResourceInformation],
) -> None:
    for name, info in mandatory.items():
        if name not in resources:
            logger.info(
                f"Adding resource type - name = {name}, units = {info.units}, "
                f"type = {info.kind.value}"
            )
            resources[name] = replace(info)
