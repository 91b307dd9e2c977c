"""Configuration document loading.

Documents are XML with a ``configuration`` root containing ``property``
elements::

    <?xml version="1.0" encoding="UTF-8"?>
    <configuration>
      <property>
        <name>db.host</name>
        <value>localhost</value>
        <final>true</final>
        <source>ops-override</source>
      </property>
      <xi:include href="site.xml" xmlns:xi="http://www.w3.org/2001/XInclude">
        <xi:fallback>
          <property><name>db.port</name><value>5432</value></property>
        </xi:fallback>
      </xi:include>
    </configuration>

The loader expands entities (including external ``SYSTEM`` entities on the
local filesystem), drops comments, honors the declared encoding, and splices
included documents in place. It returns plain :class:`LoadedProperty` records
and never touches a store; overlay and finality are the store's concern.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple
from urllib.parse import urljoin

from lxml import etree

from .exceptions import DocumentParseError, ResourceUnavailableError
from .resolvers import Resolver
from .resources import (
    DEFAULT_TIMEOUT,
    URI_PATTERN,
    FetchedDocument,
    FileResource,
    NamedResource,
    Resource,
    UriResource,
)

logger = logging.getLogger(__name__)

XINCLUDE_NS = "http://www.w3.org/2001/XInclude"
INCLUDE_TAG = f"{{{XINCLUDE_NS}}}include"
FALLBACK_TAG = f"{{{XINCLUDE_NS}}}fallback"


@dataclass(frozen=True)
class LoadedProperty:
    """A property declaration read from a document.

    Attributes:
        name: Trimmed property name
        value: Trimmed value, or None when the value element is absent or empty
        is_final: Whether the declaration carried a true ``final`` marker
        sources: Explicit ``source`` tags in document order
    """

    name: str
    value: str | None
    is_final: bool = False
    sources: Tuple[str, ...] = ()


class DocumentLoader:
    """Parses configuration documents into property declarations."""

    def __init__(self, resolver: Resolver, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the loader.

        Args:
            resolver: Resolver used to locate named resources and includes
            timeout: Network timeout in seconds for remote resources
        """
        self.resolver = resolver
        self.timeout = timeout

    def load(self, resource: Resource) -> List[LoadedProperty]:
        """Load every property declared by a resource, includes spliced in.

        Args:
            resource: Resource to load

        Returns:
            Property declarations in document order

        Raises:
            ResourceUnavailableError: If the resource or a required include
                cannot be opened
            DocumentParseError: If a document is malformed
        """
        logger.debug(f"Parsing {resource}")
        fetched = resource.fetch(self.resolver, self.timeout)
        root = self._parse(fetched, str(resource))
        if root.tag != "configuration":
            raise DocumentParseError(
                f"bad conf file: top-level element not <configuration> in {resource}",
                context={"locator": str(resource), "tag": str(root.tag)},
            )

        properties: List[LoadedProperty] = []
        self._walk(root, fetched.base_url, properties)
        return properties

    def _parse(self, fetched: FetchedDocument, label: str) -> etree._Element:
        parser = etree.XMLParser(
            encoding=fetched.encoding,
            resolve_entities=True,
            remove_comments=True,
            remove_pis=True,
            no_network=True,
        )
        try:
            root = etree.fromstring(fetched.data, parser, base_url=fetched.base_url)
        except etree.XMLSyntaxError as e:
            raise DocumentParseError(
                f"Failed to parse {label}: {e}", context={"locator": label}
            ) from e
        if root is None:
            raise DocumentParseError(f"Empty document: {label}", context={"locator": label})
        return root

    def _walk(
        self,
        element: etree._Element,
        base_url: str | None,
        out: List[LoadedProperty],
    ) -> None:
        for child in element:
            tag = child.tag
            if not isinstance(tag, str):
                continue
            if tag == "property":
                loaded = self._read_property(child)
                if loaded is not None:
                    out.append(loaded)
            elif tag == "configuration":
                self._walk(child, base_url, out)
            elif tag == INCLUDE_TAG:
                self._include(child, base_url, out)
            elif tag == FALLBACK_TAG:
                # Only meaningful inside an include.
                continue
            else:
                logger.warning(f"bad conf file: element not <property>: {tag}")

    def _include(
        self,
        element: etree._Element,
        base_url: str | None,
        out: List[LoadedProperty],
    ) -> None:
        href = (element.get("href") or "").strip()
        if not href:
            raise DocumentParseError("Include element without href")

        for candidate in self._include_candidates(href, base_url):
            try:
                fetched = candidate.fetch(self.resolver, self.timeout)
            except ResourceUnavailableError:
                continue
            logger.debug(f"Including {candidate}")
            root = self._parse(fetched, str(candidate))
            self._walk(root, fetched.base_url, out)
            return

        fallback = element.find(FALLBACK_TAG)
        if fallback is None:
            raise ResourceUnavailableError(
                f"Fetch fail on include for '{href}' with no fallback",
                context={"href": href, "base": base_url},
            )
        logger.debug(f"Using fallback content for missing include {href}")
        self._walk(fallback, base_url, out)

    def _include_candidates(self, href: str, base_url: str | None) -> List[Resource]:
        if URI_PATTERN.match(href):
            return [UriResource(href)]
        if os.path.isabs(href):
            return [FileResource(href)]

        candidates: List[Resource] = []
        if base_url:
            if URI_PATTERN.match(base_url):
                candidates.append(UriResource(urljoin(base_url, href)))
            else:
                candidates.append(FileResource(Path(base_url).parent / href))
        candidates.append(NamedResource(href))
        return candidates

    def _read_property(self, element: etree._Element) -> LoadedProperty | None:
        name = element.get("name")
        value = element.get("value")
        is_final = (element.get("final") or "").strip().lower() == "true"
        sources: List[str] = []

        for field in element:
            tag = field.tag
            if not isinstance(tag, str):
                continue
            text = "".join(field.itertext())
            if tag == "name":
                name = text
            elif tag == "value":
                # An empty element declares the key without a value.
                value = text if text else None
            elif tag == "final":
                is_final = text.strip().lower() == "true"
            elif tag == "source":
                sources.append(text.strip())

        if name is None or not name.strip():
            logger.debug("Skipping property element without a name")
            return None

        return LoadedProperty(
            name=name.strip(),
            value=value.strip() if value is not None else None,
            is_final=is_final,
            sources=tuple(sources),
        )
