"""Rendering of a store's resolved properties.

Two formats are supported:

- a configuration document (the same XML format the loader reads), written
  by :func:`write_xml`
- flat records in JSON or YAML, written by :func:`dump_configuration`::

    {"properties": [{"key": "db.host", "value": "localhost",
                     "isFinal": false, "resource": "/etc/app/site.xml",
                     "sources": ["/etc/app/site.xml"]}]}

Values are resolved before they are written and values of sensitive keys
are replaced with ``<redacted>``.
"""

import io
import json
import logging
import os
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Dict, List, Tuple, Union

import yaml  # type: ignore[import-untyped]
from lxml import etree

from .exceptions import InvalidArgumentError, PropertyNotFoundError
from .keys import SENSITIVE_CONFIG_KEYS
from .redaction import Redactor

if TYPE_CHECKING:
    from .store import PropertyStore

logger = logging.getLogger(__name__)

UNKNOWN_RESOURCE = "Unknown"

Output = Union[IO[Any], str, "os.PathLike[str]"]

Entry = Tuple[str, Union[str, None], bool, Tuple[str, ...]]


def _select(store: "PropertyStore", name: str | None) -> List[Entry]:
    """Pick the entries to emit, with resolved and redacted values.

    A deprecated ``name`` selects its replacement keys. References to
    sensitive keys are masked inside other values too.
    """
    entries = store.snapshot()
    if name:
        targets = set(store.deprecations.resolve(name))
        entries = [entry for entry in entries if entry[0] in targets]
        if not entries:
            raise PropertyNotFoundError(name)

    redactor = Redactor(store.get(SENSITIVE_CONFIG_KEYS))
    result = []
    for key, raw, is_final, sources in entries:
        value = redactor.redact(key, store.substitute_vars(raw, key, redactor))
        result.append((key, value, is_final, sources))
    return result


def write_xml(store: "PropertyStore", out: Output, name: str | None = None) -> None:
    """Write properties as a configuration document.

    Args:
        store: Store to write
        out: Binary or text stream, or a file path
        name: Single property to write; None or empty writes every property

    Raises:
        PropertyNotFoundError: If ``name`` is given but not present
    """
    root = etree.Element("configuration")
    for key, value, is_final, sources in _select(store, name):
        prop = etree.SubElement(root, "property")
        etree.SubElement(prop, "name").text = key
        etree.SubElement(prop, "value").text = value
        etree.SubElement(prop, "final").text = "true" if is_final else "false"
        for source in sources:
            etree.SubElement(prop, "source").text = source

    logger.debug(f"Writing {len(root)} properties as XML")
    data = etree.tostring(
        root, xml_declaration=True, encoding="UTF-8", pretty_print=True
    )
    _write(out, data)


def dump_configuration(
    store: "PropertyStore",
    out: Output,
    name: str | None = None,
    fmt: str = "json",
) -> None:
    """Write properties as flat records.

    Args:
        store: Store to dump
        out: Binary or text stream, or a file path
        name: Single property to dump; None or empty dumps every property
        fmt: "json" or "yaml"

    Raises:
        PropertyNotFoundError: If ``name`` is given but not present
        InvalidArgumentError: If the format is not supported
    """
    fmt = fmt.lower()
    if fmt not in ("json", "yaml"):
        raise InvalidArgumentError(
            f"Unsupported dump format: {fmt}", context={"format": fmt}
        )

    records = [_record(*entry) for entry in _select(store, name)]
    payload: Dict[str, Any]
    if name:
        payload = {"property": records[0]}
    else:
        payload = {"properties": records}

    if fmt == "json":
        text = json.dumps(payload)
    else:
        text = yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)
    _write(out, text.encode("utf-8"))


def _record(key: str, value: str | None, is_final: bool, sources: Tuple[str, ...]) -> Dict[str, Any]:
    return {
        "key": key,
        "value": value,
        "isFinal": is_final,
        "resource": sources[-1] if sources else UNKNOWN_RESOURCE,
        "sources": list(sources),
    }


def _write(out: Output, data: bytes) -> None:
    if isinstance(out, (str, os.PathLike)):
        Path(out).write_bytes(data)
    elif isinstance(out, io.TextIOBase):
        out.write(data.decode("utf-8"))
    else:
        out.write(data)
