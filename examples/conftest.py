"""Shared pytest configuration for waypoint examples.

Provides the ``example_routes`` fixture that loads a fresh route tree
from the ``app.py`` file in the same directory as the test.  Each call
re-executes app.py in an isolated module namespace, so deferred loads
cached on route nodes never leak between tests.
"""

import importlib.util
from pathlib import Path

import pytest


def _load_example(request: pytest.FixtureRequest):
    app_path = Path(request.path).parent / "app.py"
    module_name = f"example_{app_path.parent.name}"
    spec = importlib.util.spec_from_file_location(module_name, app_path)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def example_module(request: pytest.FixtureRequest):
    """The freshly executed sibling app.py module."""
    return _load_example(request)


@pytest.fixture
def example_routes(example_module):
    """The ``routes`` attribute of the sibling app.py."""
    return example_module.routes
