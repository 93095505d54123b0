"""Shared fixtures: a catalog for the Statsig lane and a source scanner."""

import pytest

from flagport.core.ast_parser import parse_source
from flagport.core.migration.catalog import PatternCatalog
from flagport.core.migration.lanes import DEFAULT_LANE_ID, LaneRegistry
from flagport.core.migration.scanner import Scanner


@pytest.fixture(scope="session")
def catalog():
    return PatternCatalog(LaneRegistry.load(DEFAULT_LANE_ID))


@pytest.fixture
def scanner(catalog):
    return Scanner(catalog, pragma_window_lines=3)


@pytest.fixture
def scan_source(scanner):
    """Parse ``text`` as ``file_path`` and return its FileScan."""
    def _scan(text: str, file_path: str = "src/app.js"):
        return scanner.scan_file(parse_source(text, file_path))
    return _scan
