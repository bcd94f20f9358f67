"""
Bulk import of filesystem documents into a Chroma collection.

Discovers files under a root folder, batches them by count, volume and
time, submits the batches with bounded concurrency and reconciles the
expected document count against the count reported by the backend.
"""

__version__ = "0.3.0"
