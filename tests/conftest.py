"""
Pytest configuration and shared fixtures

Index fixtures (temporary DuckDB database, stores, record helpers) live in
tests/fixtures/index_fixtures.py.
"""

# Register plugins for fixtures from separate files
pytest_plugins = ["tests.fixtures.index_fixtures"]
