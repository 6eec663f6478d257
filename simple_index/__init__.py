"""
Minimal Python package index.

Uploaded wheels are stored under packages/<name>/<filename> and recorded in a
JSON-backed, concurrency-safe release registry served as PEP 503 style pages.
"""

__version__ = "0.1.0"
