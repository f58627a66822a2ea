"""
Loaders for BlobGetter.

A loader retrieves a raw configuration blob from some source, and may
provide a watcher that signals when the blob has changed.
"""

from confstack.loaders.bytes import BytesLoader
from confstack.loaders.file import FileLoader

__all__ = ["BytesLoader", "FileLoader"]
