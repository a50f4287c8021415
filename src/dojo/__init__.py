"""dojo - corporate-email authentication and workspace authorization."""

__version__ = "1.0.0"
