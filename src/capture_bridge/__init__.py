"""Permission-gated camera and gallery requests with single-message results."""

__version__ = "0.1.0"
