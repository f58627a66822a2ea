"""
pydantic-settings source backed by a Config.

Lets a BaseSettings class draw its values from any stack of getters:

    class AppSettings(pydantic_settings.BaseSettings):
        host: str = "localhost"
        port: int = 8080

        @classmethod
        def settings_customise_sources(
            cls, settings_cls, init_settings, env_settings, dotenv_settings,
            file_secret_settings,
        ):
            return (init_settings, ConfigSettingsSource(settings_cls, cfg, node="app"))

Values are passed to pydantic raw, so pydantic performs the validation and
conversion. Field keys follow the same rules as Config.unmarshal().
"""

from __future__ import annotations

import typing as _typing

import pydantic as _pydantic
import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings

import confstack.config as config
import confstack.convert as convert
import confstack.keys as keys


def _field_key(name: str, field: _pydantic_fields.FieldInfo, tag: str) -> str:
    extra = field.json_schema_extra if isinstance(field.json_schema_extra, dict) else {}
    return str(extra.get(tag) or keys.lower_first(name))


def _model_type(annotation: _typing.Any) -> type[_pydantic.BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, _pydantic.BaseModel):
        return annotation
    return None


def _list_model_type(annotation: _typing.Any) -> type[_pydantic.BaseModel] | None:
    if _typing.get_origin(annotation) is not list:
        return None
    args = _typing.get_args(annotation)
    return _model_type(args[0]) if args else None


def collect(cfg: config.Config, model: type[_pydantic.BaseModel]) -> dict[str, _typing.Any]:
    """
    Collect the raw values for the fields of a model from a config.

    Nested models, and lists of models, are collected from the corresponding
    subtrees. Fields with no value in the config are omitted.
    """
    values: dict[str, _typing.Any] = {}
    for name, field in model.model_fields.items():
        key = _field_key(name, field, cfg.tag)
        nested = _model_type(field.annotation)
        if nested is not None:
            sub = collect(cfg.get_config(key), nested)
            if sub:
                values[name] = sub
            continue
        element = _list_model_type(field.annotation)
        if element is not None:
            length, ok = cfg.lookup(key + "[]")
            if ok:
                values[name] = [
                    collect(cfg.get_config(f"{key}[{i}]"), element)
                    for i in range(convert.to_int(length))
                ]
            continue
        v, ok = cfg.lookup(key)
        if ok:
            values[name] = v
    return values


class ConfigSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that reads fields from a Config.

    Args:
        settings_cls: The Settings class being populated.
        cfg: The config to read.
        node: Node of the config holding the settings. Empty for the root.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        cfg: config.Config,
        *,
        node: str = "",
    ) -> None:
        super().__init__(settings_cls)
        self._config = cfg.get_config(node) if node else cfg

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """
        Get the raw value for a top-level field.

        Returns:
            Tuple of (value, field_name, is_complex).
        """
        key = _field_key(field_name, field, self._config.tag)
        v, ok = self._config.lookup(key)
        if not ok:
            return None, field_name, False
        return v, field_name, isinstance(v, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """
        Return the settings found in the config.

        Raises:
            ConversionError: If an array length in the config is not an integer.
        """
        return collect(self._config, self.settings_cls)
