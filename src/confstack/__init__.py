"""
confstack - layered configuration for Python applications

Unifies configuration from files, the environment and other sources behind
a single key/value interface, with type conversion, key aliasing, layered
fallback and change notification.

Example usage:
    import confstack

    defaults = confstack.MapGetter({"db": {"host": "localhost", "port": 5432}})
    env = confstack.EnvGetter("APP_")
    cfg = confstack.Config(confstack.overlay(env, defaults))
    port = cfg.get("db.port").as_int()
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("confstack")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from confstack.alias import Alias, RegexAlias, with_alias, with_regex_alias  # noqa: E402
from confstack.config import Config, KeyWatcher, Watcher  # noqa: E402
from confstack.decorators import (  # noqa: E402
    with_default,
    with_graft,
    with_key_replacer,
    with_must_get,
    with_prefix,
    with_trace,
    with_update_handler,
)
from confstack.errors import (  # noqa: E402
    CanceledError,
    ClosedError,
    ConfigError,
    ConversionError,
    InvalidStructError,
    LoadError,
    NotFoundError,
    PatternError,
    TemporaryError,
    UnmarshalError,
    UnwatchableError,
    is_temporary,
    with_temporary,
)
from confstack.getter import (  # noqa: E402
    Decorator,
    Getter,
    GetterFunc,
    GetterWatcher,
    WatchableGetter,
    decorate,
)
from confstack.getters import BlobGetter, DictGetter, EnvGetter, MapGetter  # noqa: E402
from confstack.overlay import overlay  # noqa: E402
from confstack.stack import Stack  # noqa: E402
from confstack.value import Value, ignore_errors, raise_errors  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "Alias",
    "BlobGetter",
    "CanceledError",
    "ClosedError",
    "Config",
    "ConfigError",
    "ConversionError",
    "Decorator",
    "DictGetter",
    "EnvGetter",
    "Getter",
    "GetterFunc",
    "GetterWatcher",
    "InvalidStructError",
    "KeyWatcher",
    "LoadError",
    "MapGetter",
    "NotFoundError",
    "PatternError",
    "RegexAlias",
    "Stack",
    "TemporaryError",
    "UnmarshalError",
    "UnwatchableError",
    "Value",
    "WatchableGetter",
    "Watcher",
    "decorate",
    "ignore_errors",
    "is_temporary",
    "overlay",
    "raise_errors",
    "with_alias",
    "with_default",
    "with_graft",
    "with_key_replacer",
    "with_must_get",
    "with_prefix",
    "with_regex_alias",
    "with_temporary",
    "with_trace",
    "with_update_handler",
]
