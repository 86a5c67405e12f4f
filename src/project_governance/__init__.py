"""Project governance core: event catalog, projection, rendering and policy."""

__version__ = "0.1.0"
