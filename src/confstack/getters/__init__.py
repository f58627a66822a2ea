"""
Configuration sources.
"""

from confstack.getters.blob import BlobGetter, BlobWatcher, Decoder, Loader, LoaderWatcher
from confstack.getters.dict import DictGetter, MapGetter
from confstack.getters.env import EnvGetter, list_splitter

__all__ = [
    "BlobGetter",
    "BlobWatcher",
    "Decoder",
    "DictGetter",
    "EnvGetter",
    "Loader",
    "LoaderWatcher",
    "MapGetter",
    "list_splitter",
]
