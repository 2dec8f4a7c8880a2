"""Keep TestRail case titles in sync with test('C1234 ...') titles in local test files."""

__version__ = "2.0.0"
