"""Serve a directory over HTTP with directory listings and live reload."""

__version__ = "0.2.0"
