"""
Decoders for BlobGetter.

A decoder converts a raw blob into a nested mapping of configuration.
"""

from confstack.decoders.json import JsonDecoder
from confstack.decoders.yaml import YamlDecoder

__all__ = ["JsonDecoder", "YamlDecoder"]
