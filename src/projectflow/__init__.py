"""projectflow: local-first tracker for projects, courses, and links."""

__version__ = "0.4.0"
