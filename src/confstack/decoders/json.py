"""JSON decoder."""

from __future__ import annotations

import json as _json
import typing as _typing

import confstack.errors as errors


class JsonDecoder:
    """Decodes a JSON object into a dict."""

    name = "json"

    def decode(self, data: bytes) -> dict[str, _typing.Any]:
        """
        Decode a JSON document.

        An empty document decodes to an empty dict.

        Raises:
            LoadError: If the document is not valid JSON, or is not an object.
        """
        if not data.strip():
            return {}
        try:
            parsed = _json.loads(data)
        except ValueError as e:
            raise errors.LoadError(self.name, f"invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise errors.LoadError(
                self.name, f"config must be a JSON object, got {type(parsed).__name__}"
            )
        return parsed
