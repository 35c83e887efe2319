"""Make the shared fixtures in tests/conftest.py visible to every feature's tests."""

pytest_plugins = ["tests.conftest"]
