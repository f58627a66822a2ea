"""YAML decoder."""

from __future__ import annotations

import typing as _typing

import yaml as _yaml

import confstack.errors as errors


class YamlDecoder:
    """Decodes a YAML mapping into a dict, using the safe loader."""

    name = "yaml"

    def decode(self, data: bytes) -> dict[str, _typing.Any]:
        """
        Decode a YAML document.

        An empty document decodes to an empty dict. Keys are converted to
        strings, as YAML allows non-string keys such as ``1`` or ``true``.

        Raises:
            LoadError: If the document is not valid YAML, or is not a mapping.
        """
        try:
            parsed = _yaml.safe_load(data)
        except _yaml.YAMLError as e:
            raise errors.LoadError(self.name, f"invalid YAML: {e}") from e
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise errors.LoadError(
                self.name, f"config must be a YAML mapping (dict), got {type(parsed).__name__}"
            )
        return _stringify_keys(parsed)


def _stringify_keys(node: _typing.Any) -> _typing.Any:
    if isinstance(node, dict):
        return {str(k): _stringify_keys(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_stringify_keys(v) for v in node]
    return node
