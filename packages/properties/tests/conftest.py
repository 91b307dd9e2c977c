"""Pytest configuration and fixtures for properties package tests."""

import shutil
import tempfile
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

from dataknobs_properties import (
    ImportResolver,
    PropertyStore,
    get_default_resource_registry,
    get_deprecation_registry,
)


def prop_xml(name, value=None, final=False, sources=()):
    """Render one property element."""
    parts = [f"<name>{escape(name)}</name>"]
    if value is not None:
        parts.append(f"<value>{escape(value)}</value>")
    if final:
        parts.append("<final>true</final>")
    parts.extend(f"<source>{escape(s)}</source>" for s in sources)
    return "<property>" + "".join(parts) + "</property>"


def config_xml(*props, body="", header='<?xml version="1.0" encoding="UTF-8"?>'):
    """Render a configuration document.

    Each prop is a (name, value) tuple, a (name, value, final) tuple, or an
    already rendered string.
    """
    rendered = [p if isinstance(p, str) else prop_xml(*p) for p in props]
    return f"{header}\n<configuration>\n" + "\n".join(rendered) + body + "\n</configuration>\n"


@pytest.fixture(autouse=True)
def reset_registries():
    """Restore the process-wide registries around every test."""
    get_deprecation_registry().reset()
    get_default_resource_registry().reset()
    yield
    get_deprecation_registry().reset()
    get_default_resource_registry().reset()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp)


@pytest.fixture
def write_conf(temp_dir):
    """Write a configuration document into the temp dir and return its path."""

    def _write(filename, *props, body="", encoding="utf-8", header=None):
        path = temp_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        kwargs = {"body": body}
        if header is not None:
            kwargs["header"] = header
        path.write_bytes(config_xml(*props, **kwargs).encode(encoding))
        return path

    return _write


@pytest.fixture
def store(temp_dir):
    """Create an empty store that resolves named resources in the temp dir."""
    return PropertyStore(resolver=ImportResolver([temp_dir]))


@pytest.fixture
def make_xml():
    """Render configuration documents as text."""
    return config_xml
