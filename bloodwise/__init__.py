"""Blood-test report parsing and interpretation service."""

__version__ = "0.1.0"
