"""Resource descriptors for configuration documents.

A resource is anything a :class:`~dataknobs_properties.store.PropertyStore`
can load a document from:

- :class:`FileResource` - a filesystem path
- :class:`UriResource` - a ``file:``, ``http:`` or ``https:`` URI
- :class:`NamedResource` - a bare name looked up through the store's resolver
- :class:`StreamResource` - an open binary or text stream

File, URI and named resources carry a normalized ``locator`` used for
provenance and duplicate detection. Streams have no locator and are never
deduplicated.
"""

import io
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from .exceptions import InvalidArgumentError, ResourceUnavailableError
from .keys import STREAM_SOURCE
from .resolvers import Resolver

URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:(//|/)")

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class FetchedDocument:
    """Raw document bytes along with what is needed to parse them."""

    data: bytes
    base_url: str | None = None
    encoding: str | None = None


class Resource(ABC):
    """Base class for configuration resource descriptors."""

    #: True for resources registered implicitly as store defaults
    is_default: bool = False

    @property
    @abstractmethod
    def locator(self) -> str | None:
        """Normalized identifier, or None for streams."""
        raise NotImplementedError

    @property
    def source_name(self) -> str:
        """Provenance tag recorded for properties loaded from this resource."""
        return self.locator or STREAM_SOURCE

    @property
    def reloadable(self) -> bool:
        return self.locator is not None

    @abstractmethod
    def fetch(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:
        """Read the raw document.

        Args:
            resolver: Resolver used to locate named resources
            timeout: Network timeout in seconds for remote resources

        Returns:
            The fetched document

        Raises:
            ResourceUnavailableError: If the resource cannot be opened
        """
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource) or self.locator is None:
            return self is other
        return type(self) is type(other) and self.locator == other.locator

    def __hash__(self) -> int:
        if self.locator is None:
            return id(self)
        return hash((type(self).__name__, self.locator))

    def __str__(self) -> str:
        return self.source_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source_name!r})"


class FileResource(Resource):
    """A document on the local filesystem."""

    def __init__(self, path: Union[str, "os.PathLike[str]"]) -> None:
        self.path = Path(os.path.abspath(os.fspath(path)))

    @property
    def locator(self) -> str:
        return str(self.path)

    def fetch(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:
        return FetchedDocument(_read_file(self.path), base_url=str(self.path))


class UriResource(Resource):
    """A document addressed by URI (``file``, ``http`` or ``https``)."""

    def __init__(self, uri: str) -> None:
        self.uri = uri.strip()
        self.scheme = urlparse(self.uri).scheme.lower()

    @property
    def locator(self) -> str:
        return self.uri

    def fetch(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:
        if self.scheme == "file":
            path = Path(url2pathname(urlparse(self.uri).path))
            return FetchedDocument(_read_file(path), base_url=str(path))

        if self.scheme in ("http", "https"):
            try:
                response = requests.get(self.uri, timeout=timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise ResourceUnavailableError(
                    f"Unable to fetch {self.uri}: {e}", context={"locator": self.uri}
                ) from e
            return FetchedDocument(response.content, base_url=self.uri)

        raise ResourceUnavailableError(
            f"Unsupported URI scheme '{self.scheme}' for {self.uri}",
            context={"locator": self.uri},
        )


class NamedResource(Resource):
    """A document found by name through the store's resolver search path."""

    def __init__(self, name: str, is_default: bool = False) -> None:
        self.name = name.strip()
        self.is_default = is_default

    @property
    def locator(self) -> str:
        return self.name

    def fetch(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:
        path = resolver.find_resource(self.name)
        if path is None:
            raise ResourceUnavailableError(
                f"{self.name} not found", context={"locator": self.name}
            )
        return FetchedDocument(_read_file(path), base_url=str(path))


class StreamResource(Resource):
    """An opaque stream; read once and closed after reading."""

    def __init__(self, stream: IO[Any], name: str | None = None) -> None:
        self.stream = stream
        self.name = name or STREAM_SOURCE

    @property
    def locator(self) -> None:
        return None

    @property
    def source_name(self) -> str:
        return self.name

    def fetch(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> FetchedDocument:
        try:
            with self.stream:
                data = self.stream.read()
        except (OSError, ValueError) as e:
            raise ResourceUnavailableError(
                f"Unable to read {self.name}: {e}", context={"locator": self.name}
            ) from e

        if isinstance(data, str):
            return FetchedDocument(data.encode("utf-8"), encoding="utf-8")
        return FetchedDocument(bytes(data))


def as_resource(ref: Any) -> Resource:
    """Convert a resource reference into a descriptor.

    Args:
        ref: A Resource, a path-like object (file), a string (URI when it has a
            scheme, otherwise a resource name), or a readable stream

    Returns:
        Resource descriptor

    Raises:
        InvalidArgumentError: If the reference type is not supported
    """
    if isinstance(ref, Resource):
        return ref
    if isinstance(ref, os.PathLike):
        return FileResource(ref)
    if isinstance(ref, str):
        if URI_PATTERN.match(ref.strip()):
            return UriResource(ref)
        return NamedResource(ref)
    if isinstance(ref, (bytes, bytearray)):
        return StreamResource(io.BytesIO(ref))
    if hasattr(ref, "read"):
        return StreamResource(ref, name=None)
    raise InvalidArgumentError(
        f"Unsupported resource type: {type(ref).__name__}",
        context={"resource": repr(ref)},
    )


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ResourceUnavailableError(
            f"{path} not found: {e}", context={"locator": str(path)}
        ) from e
