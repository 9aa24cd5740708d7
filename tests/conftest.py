"""
Pytest configuration and shared fixtures.

Provides a sample entity model, in-memory remote sources seeded with
contacts, data sets and views over them, and isolation of the config
cache and DATAVIEW_* environment variables.
"""

import os

import pytest

from dataview.core.config.loader import clear_cache
from dataview.core.dataset import DataSet, Entity
from dataview.core.query import Query
from dataview.core.remote import MemoryRemoteSource
from dataview.core.view import create

# ==============================================================================
# Sample Models
# ==============================================================================


class Contact(Entity):
    """Entity used throughout the test suite."""

    id: int | None = None
    name: str
    city: str | None = None
    age: int | None = None


SAMPLE_CONTACTS = [
    {"id": 1, "name": "Ada", "city": "London", "age": 36},
    {"id": 2, "name": "Grace", "city": "New York", "age": 85},
    {"id": 3, "name": "Edsger", "city": "Austin", "age": 72},
    {"id": 4, "name": "Barbara", "city": "London", "age": 50},
    {"id": 5, "name": "Alan", "city": "London", "age": 41},
]


# ==============================================================================
# Remote Source Fixtures
# ==============================================================================


@pytest.fixture
def source():
    """Provide an in-memory remote source seeded with five contacts."""
    return MemoryRemoteSource(SAMPLE_CONTACTS)


@pytest.fixture
def empty_source():
    """Provide an in-memory remote source with no records."""
    return MemoryRemoteSource()


# ==============================================================================
# Data Set and View Fixtures
# ==============================================================================


@pytest.fixture
def data_set(source):
    """Provide a buffered data set of contacts (not yet refreshed)."""
    return DataSet(Contact, source)


@pytest.fixture
def unbuffered_set(source):
    """Provide a data set that writes every mutation through immediately."""
    return DataSet(Contact, source, buffer=False)


@pytest.fixture
def view(data_set):
    """Provide an unpaged view over the buffered data set."""
    return create(data_set, Query())


# ==============================================================================
# Config Isolation Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_config_cache():
    """Clear the config cache before and after every test."""
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Isolate configuration lookups from the real machine.

    Removes DATAVIEW_* variables, points XDG_CONFIG_HOME at an empty
    directory and runs the test from an empty project directory.
    """
    for name in list(os.environ):
        if name.startswith("DATAVIEW_"):
            monkeypatch.delenv(name, raising=False)

    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project
