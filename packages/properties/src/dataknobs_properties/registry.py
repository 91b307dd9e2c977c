"""Process-wide registries that property stores consult.

Two registries exist:

- :class:`DeprecationRegistry` maps deprecated key names to their
  replacements. Reads, writes and document loads of a deprecated key are
  redirected to the replacement keys.
- :class:`DefaultResourceRegistry` lists the named resources that stores
  created with ``load_defaults=True`` register before anything else.

Each store takes its registries as constructor arguments and falls back to
the process defaults returned by :func:`get_deprecation_registry` and
:func:`get_default_resource_registry`. Both registries are thread-safe and
expose ``reset()`` so tests can restore a clean state.

Example:
    ```python
    registry = get_deprecation_registry()
    registry.add_deprecation("dfs.block.size", "dfs.blocksize")

    store = PropertyStore()
    store.set("dfs.block.size", "128m")
    store.get("dfs.blocksize")  # '128m'
    ```
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple, Union

from dataknobs_common.registry import Registry

from .exceptions import InvalidArgumentError
from .keys import DEFAULT_RESOURCES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeprecatedKeyInfo:
    """Replacement information for a deprecated key."""

    new_keys: Tuple[str, ...]
    custom_message: str | None = None

    def warning_message(self, key: str) -> str:
        if self.custom_message:
            return self.custom_message
        return f"{key} is deprecated. Instead, use {', '.join(self.new_keys)}"


class DeprecationRegistry(Registry[DeprecatedKeyInfo]):
    """Thread-safe mapping of deprecated keys to replacement keys."""

    def __init__(self) -> None:
        super().__init__("deprecations")
        self._reverse: Dict[str, List[str]] = {}
        self._warned: Set[str] = set()

    def add_deprecation(
        self,
        key: str,
        new_keys: Union[str, Sequence[str]],
        message: str | None = None,
    ) -> None:
        """Register a deprecated key.

        Args:
            key: Deprecated key name
            new_keys: Replacement key or keys
            message: Optional custom warning message

        Raises:
            InvalidArgumentError: If no replacement keys are given
        """
        if isinstance(new_keys, str):
            new_keys = [new_keys]
        replacements = tuple(k.strip() for k in new_keys if k and k.strip())
        if not key or not replacements:
            raise InvalidArgumentError(
                "A deprecation needs a key and at least one replacement",
                context={"key": key},
            )

        key = key.strip()
        with self._lock:
            previous = self.get_optional(key)
            if previous is not None:
                logger.debug(f"Replacing existing deprecation for {key}")
                for old_new in previous.new_keys:
                    aliases = self._reverse.get(old_new, [])
                    if key in aliases:
                        aliases.remove(key)
            self.register(key, DeprecatedKeyInfo(replacements, message), allow_overwrite=True)
            for new_key in replacements:
                self._reverse.setdefault(new_key, []).append(key)

    def is_deprecated(self, key: str) -> bool:
        return self.has(key)

    def resolve(self, key: str) -> Tuple[str, ...]:
        """Get the keys an operation on ``key`` should act on.

        Logs a warning the first time a deprecated key is used.

        Args:
            key: Requested key name

        Returns:
            The replacement keys for a deprecated key, else ``(key,)``
        """
        with self._lock:
            info = self.get_optional(key)
            if info is None:
                return (key,)
            first_use = key not in self._warned
            self._warned.add(key)
        if first_use:
            logger.warning(info.warning_message(key))
        return info.new_keys

    def aliases(self, key: str) -> List[str]:
        """Get every other name that refers to the same property as ``key``.

        For a deprecated key this is its replacements; for a replacement key
        it is the deprecated keys that map onto it.
        """
        with self._lock:
            names: List[str] = []
            info = self.get_optional(key)
            if info is not None:
                names.extend(info.new_keys)
            names.extend(self._reverse.get(key, []))
            return names

    def keys(self) -> List[str]:
        return self.list_keys()

    def reset(self) -> None:
        """Remove all deprecations and forget which warnings were logged."""
        with self._lock:
            self.clear()
            self._reverse.clear()
            self._warned.clear()


class DefaultResourceRegistry(Registry[str]):
    """Ordered, thread-safe list of default resource names."""

    def __init__(self, names: Iterable[str] = DEFAULT_RESOURCES) -> None:
        super().__init__("default_resources")
        self._initial = tuple(names)
        self.reset()

    def add(self, name: str) -> None:
        """Append a default resource name (ignored when already present)."""
        with self._lock:
            if not self.has(name):
                self.register(name, name)

    def names(self) -> List[str]:
        return self.list_keys()

    def reset(self) -> None:
        """Restore the names the registry was created with."""
        with self._lock:
            self.clear()
            for name in self._initial:
                self.add(name)


_deprecations = DeprecationRegistry()
_default_resources = DefaultResourceRegistry()


def get_deprecation_registry() -> DeprecationRegistry:
    """Get the process-wide deprecation registry."""
    return _deprecations


def get_default_resource_registry() -> DefaultResourceRegistry:
    """Get the process-wide default resource registry."""
    return _default_resources
