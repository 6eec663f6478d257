"""
Durable storage for the package registry.

This package is responsible for:
* Persisting the full registry state as a JSON snapshot (index.json).
* Storing raw artifact bytes under packages/<name>/<filename>.
"""
