"""Type and resource resolution capability used by property stores.

A store never imports classes or searches for named resources on its own; it
delegates to a :class:`Resolver`. The default :class:`ImportResolver` imports
dotted paths with :mod:`importlib` and searches a list of directories for
named resources. Tests and embedding applications can swap in their own
resolver per store.
"""

import builtins
import importlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Type, Union

from .exceptions import TypeResolutionError


class Resolver(ABC):
    """Resolves type names and named resources for a property store."""

    @abstractmethod
    def resolve_type(self, name: str) -> Type[Any]:
        """Resolve a fully-qualified type name.

        Args:
            name: Dotted type path (e.g., "collections.OrderedDict")

        Returns:
            The resolved type

        Raises:
            TypeResolutionError: If the name cannot be resolved
        """
        raise NotImplementedError

    def find_resource(self, name: str) -> Path | None:
        """Locate a named resource.

        Args:
            name: Resource name (e.g., "core-site.xml")

        Returns:
            Path to the resource, or None when it cannot be found
        """
        return None


class ImportResolver(Resolver):
    """Resolver backed by importlib and a directory search path.

    Attributes:
        search_path: Directories searched, in order, for named resources
    """

    def __init__(self, search_path: Iterable[Union[str, Path]] | None = None) -> None:
        """Initialize the resolver.

        Args:
            search_path: Directories to search for named resources.
                Defaults to the current working directory.
        """
        if search_path is None:
            search_path = [Path.cwd()]
        self.search_path: List[Path] = [Path(p) for p in search_path]

    def resolve_type(self, name: str) -> Type[Any]:
        name = name.strip()
        if not name:
            raise TypeResolutionError("Empty type name", context={"type_name": name})

        if "." in name:
            module_path, attr = name.rsplit(".", 1)
            try:
                module = importlib.import_module(module_path)
            except ImportError as e:
                raise TypeResolutionError(
                    f"Class {name} not found: {e}", context={"type_name": name}
                ) from e
        else:
            module, attr = builtins, name

        resolved = getattr(module, attr, None)
        if not isinstance(resolved, type):
            raise TypeResolutionError(
                f"Class {name} not found", context={"type_name": name}
            )
        return resolved

    def find_resource(self, name: str) -> Path | None:
        for directory in self.search_path:
            candidate = directory / name
            if candidate.is_file():
                return candidate
        return None
