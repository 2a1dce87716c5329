"""Rich-content markup engine for hospitality page bodies."""

__version__ = "0.1.0"
