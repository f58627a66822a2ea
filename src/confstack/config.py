"""
Config - the application-facing view of a getter.

A Config binds a root getter to a separator, an unmarshal tag and an error
handling policy, and provides typed access to it:

    cfg = Config(overlay(env_getter, file_getter))
    port = cfg.get("db.port").as_int()
    db = cfg.get_config("db")           # view rooted at "db"
    cfg.unmarshal("db", settings)       # populate a dataclass or model

If the root getter is watchable, changes are committed by a background
task, started on the first watch, and broadcast to every Watcher and
KeyWatcher of the Config and of any Config derived from it.
"""

from __future__ import annotations

import asyncio as _asyncio
import copy as _copy
import dataclasses as _dataclasses
import logging as _logging
import threading as _threading
import types as _types
import typing as _typing

import pydantic as _pydantic

import confstack.constants as constants
import confstack.convert as convert
import confstack.decorators as decorators
import confstack.errors as errors
import confstack.getter as getter
import confstack.keys as keys
import confstack.overlay as overlay
import confstack.value as value
import confstack.watch as watch

_logger = _logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET: _typing.Any = _Unset()


class _Root:
    """
    State shared by a Config and every Config derived from it.

    Holds the lock that keeps commits from landing in the middle of an
    unmarshal, the notifier for committed changes, and the background task
    that drives the root getter's watcher.
    """

    def __init__(self, root_getter: getter.Getter) -> None:
        self.getter = root_getter
        self.lock = _threading.Lock()
        self.notifier = watch.Notifier()
        self.closed = _asyncio.Event()
        self.error: Exception | None = None
        self._watcher: getter.GetterWatcher | None = None
        self._task: _asyncio.Task[None] | None = None

    def start(self) -> None:
        """
        Start the updater task, if not already running.

        Raises:
            ClosedError: If the config is closed.
            UnwatchableError: If the root getter is not watchable.
            Exception: The error that ended a previous run of the task.
        """
        if self.closed.is_set():
            raise errors.ClosedError("config: closed")
        if self.error is not None:
            raise self.error
        if self._task is not None:
            return
        self._watcher = getter.watcher_of(self.getter)
        if self._watcher is None:
            raise errors.UnwatchableError()
        self._task = _asyncio.create_task(self._run(self._watcher), name="confstack-updater")

    async def _run(self, gw: getter.GetterWatcher) -> None:
        while True:
            try:
                await gw.watch()
            except Exception as e:
                if errors.is_temporary(e):
                    _logger.debug("Temporary error watching config: %s", e)
                    continue
                if self.closed.is_set():
                    return
                _logger.warning("Config watch ended: %s", e)
                self.error = e
                self.notifier.notify()
                return
            with self.lock:
                gw.commit_update()
            _logger.debug("Config updated")
            self.notifier.notify()

    def close(self) -> None:
        if self.closed.is_set():
            return
        self.closed.set()
        if self._watcher is not None:
            self._watcher.close()
        if self._task is not None:
            self._task.cancel()

    async def aclose(self) -> None:
        self.close()
        task, self._task = self._task, None
        if task is not None:
            await _asyncio.gather(task, return_exceptions=True)
        if self._watcher is not None:
            await watch.aclose(self._watcher)


class Config:
    """
    Typed access to a tree of configuration provided by a getter.

    Args:
        root: The getter providing the configuration.
        separator: Separator between tiers in keys.
        tag: Name of the field metadata entry that overrides the key a field
            is unmarshalled from.
        error_handler: Policy for errors from get() and from conversions by
            the returned Values. Inherited by derived configs.
        default: Getter searched for keys the root getter does not have.
    """

    def __init__(
        self,
        root: getter.Getter,
        *,
        separator: str = constants.DEFAULT_SEPARATOR,
        tag: str = constants.DEFAULT_TAG,
        error_handler: value.ErrorHandler | None = None,
        default: getter.Getter | None = None,
    ) -> None:
        self._getter = root
        self._default = default
        self._separator = separator
        self._tag = tag
        self._error_handler = error_handler
        self._root = _Root(root)

    def __repr__(self) -> str:
        return f"Config({self._getter!r})"

    def __enter__(self) -> Config:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    async def __aenter__(self) -> Config:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    @property
    def getter(self) -> getter.Getter:
        return self._getter

    @property
    def separator(self) -> str:
        return self._separator

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def error_handler(self) -> value.ErrorHandler | None:
        return self._error_handler

    def append(self, g: getter.Getter | None) -> None:
        """
        Add a getter to the end of the getters searched, before any default.

        Only for use while setting up a config, before it is shared or watched.
        """
        if g is None:
            return
        self._set_getter(overlay.overlay(self._getter, g))

    def insert(self, g: getter.Getter | None) -> None:
        """
        Add a getter to the front of the getters searched.

        Only for use while setting up a config, before it is shared or watched.
        """
        if g is None:
            return
        self._set_getter(overlay.overlay(g, self._getter))

    def _set_getter(self, g: getter.Getter) -> None:
        if self._root.getter is self._getter:
            self._root.getter = g
        self._getter = g

    def close(self) -> None:
        """
        End all watches on the config, and on configs derived from it.

        The config remains readable. Idempotent.
        """
        self._root.close()

    async def aclose(self) -> None:
        """Close the config, then wait for its background watch tasks to end."""
        await self._root.aclose()

    def lookup(self, key: str) -> tuple[_typing.Any, bool]:
        """Get the raw value of a key, without applying the error handling policy."""
        v, ok = self._getter.get(key)
        if not ok and self._default is not None:
            v, ok = self._default.get(key)
        return v, ok

    def get(self, key: str, *, error_handler: value.ErrorHandler | None = _UNSET) -> value.Value:
        """
        Get the value of a key.

        Args:
            key: The key, relative to this config's root.
            error_handler: Overrides the config's error handler for this get
                and for conversions by the returned Value.

        Raises:
            NotFoundError: If the key is not found, unless the error handler
                swallows it, in which case an empty Value is returned.
        """
        handler = self._error_handler if error_handler is _UNSET else error_handler
        v, ok = self.lookup(key)
        if not ok:
            err: Exception | None = errors.NotFoundError(key)
            if handler is not None:
                err = handler(err)
            if err is not None:
                raise err
        return value.Value(v, error_handler=handler)

    def must_get(
        self, key: str, *, error_handler: value.ErrorHandler | None = _UNSET
    ) -> value.Value:
        """
        Get the value of a key that the application cannot run without.

        Unlike get(), a miss always raises, and conversion errors on the
        returned Value raise unless another handler is provided.

        Raises:
            NotFoundError: If the key is not found.
        """
        v, ok = self.lookup(key)
        if not ok:
            raise errors.NotFoundError(key)
        handler = value.raise_errors if error_handler is _UNSET else error_handler
        return value.Value(v, error_handler=handler)

    def get_config(
        self,
        node: str,
        *,
        separator: str | None = None,
        tag: str | None = None,
        error_handler: value.ErrorHandler | None = _UNSET,
    ) -> Config:
        """
        Get a view of the config rooted at node.

        The view shares this config's getter, prefixed with the node, so no
        data is copied and changes to the config are visible through it.
        Aliases registered on the getter for nodes at or above node apply
        to the view, but aliases registered within the view's getter are not
        visible to the parent.
        """
        sub = Config.__new__(Config)
        sub._getter = self._getter
        sub._default = self._default
        if node:
            prefix = node + self._separator
            sub._getter = decorators.Prefix(self._getter, prefix)
            if self._default is not None:
                sub._default = decorators.Prefix(self._default, prefix)
        sub._separator = self._separator if separator is None else separator
        sub._tag = self._tag if tag is None else tag
        sub._error_handler = self._error_handler if error_handler is _UNSET else error_handler
        sub._root = self._root
        return sub

    def unmarshal(self, node: str, obj: _typing.Any) -> None:
        """
        Populate a dataclass or pydantic model instance from a node of the config.

        Each field is read from the key named by its ``tag`` metadata, else
        from the field name with its first character lower-cased. Nested
        dataclass or model instances are populated from the corresponding
        subtree, and ``list[Model]`` fields from the array ``key[0]`` to
        ``key[n-1]``, where n is read from ``key[]``. Other fields are
        converted to their annotated type. Fields with no corresponding
        config, and config with no corresponding field, are ignored.

        A failed conversion leaves the field unchanged, and the remaining
        fields are still populated.

        Raises:
            InvalidStructError: If obj is not a dataclass or model instance.
            UnmarshalError: For the first conversion that failed.
        """
        with self._root.lock:
            err = _unmarshal(self, node, obj, node)
        if err is not None:
            raise err

    def unmarshal_to_map(self, node: str, objmap: dict[str, _typing.Any]) -> None:
        """
        Populate a dict from a node of the config.

        The existing entries define the keys to read, and the type each value
        is converted to:

        - None receives the raw value.
        - A dict is populated from the corresponding subtree.
        - A non-empty list of dicts is replaced by an array of objects, each
          populated from a copy of the first element.
        - A non-empty list is converted to a list of its first element's type.
        - Anything else is converted to its own type.

        Keys that are not found are left unchanged.

        Raises:
            UnmarshalError: For the first conversion that failed.
        """
        with self._root.lock:
            err = _unmarshal_to_map(self, node, objmap, node)
        if err is not None:
            raise err

    def new_watcher(self) -> Watcher:
        """Create a watcher of the config as a whole."""
        return Watcher(self)

    async def watch(self, done: _asyncio.Event | None = None) -> None:
        """Block until the next change to the config. See Watcher.watch()."""
        await self.new_watcher().watch(done)

    def new_key_watcher(
        self,
        key: str,
        *,
        error_handler: value.ErrorHandler | None = _UNSET,
    ) -> KeyWatcher:
        """Create a watcher of the value of a single key."""
        return KeyWatcher(self, key, error_handler=error_handler)

    async def watch_key(self, key: str, done: _asyncio.Event | None = None) -> value.Value:
        """Return the current value of key. See KeyWatcher.watch()."""
        return await self.new_key_watcher(key).watch(done)


class Watcher:
    """
    Watches a config as a whole.

    Each watch() returns once the config has changed since the watcher was
    created or since the previous watch() returned. A watcher should only be
    used by one task at a time. Create a watcher per task to watch from
    several.
    """

    def __init__(self, config: Config) -> None:
        self._root = config._root
        self._updated = self._root.notifier.notified()
        self._lock = _asyncio.Lock()

    async def watch(self, done: _asyncio.Event | None = None) -> None:
        """
        Block until the config changes.

        Args:
            done: Ends the watch early when set.

        Raises:
            ClosedError: If the config is closed.
            CanceledError: If done is set.
            UnwatchableError: If the config's getter is not watchable.
            Exception: The error that ended the config's watch, if any.
        """
        async with self._lock:
            self._root.start()
            await watch.wait_any(self._root.closed, done, self._updated)
            if self._root.closed.is_set():
                raise errors.ClosedError("config: closed")
            if done is not None and done.is_set():
                raise errors.CanceledError()
            if self._root.error is not None:
                raise self._root.error
            self._updated = self._root.notifier.notified()


class KeyWatcher:
    """
    Watches the value of a single key.

    The key should be a leaf, not a node. The first watch() returns the
    current value immediately, and each later watch() blocks until the
    value differs from the value last returned. Changes elsewhere in the
    config are ignored.
    """

    def __init__(
        self,
        config: Config,
        key: str,
        *,
        error_handler: value.ErrorHandler | None = _UNSET,
    ) -> None:
        self._config = config
        self._key = key
        self._error_handler = error_handler
        self._watcher = Watcher(config)
        self._last: value.Value | None = None

    @property
    def key(self) -> str:
        return self._key

    async def watch(self, done: _asyncio.Event | None = None) -> value.Value:
        """
        Return the next value of the key.

        Raises:
            NotFoundError: If the key is not found, per the config's policy.
            ClosedError, CanceledError: As for Watcher.watch().
        """
        while True:
            if self._last is not None:
                await self._watcher.watch(done)
            v = self._config.get(self._key, error_handler=self._error_handler)
            if self._last is None or v.raw != self._last.raw:
                self._last = v
                return v


# Unmarshalling


def _join(node: str, key: str, separator: str) -> str:
    if not node:
        return key
    return node + separator + key


def _is_struct(obj: _typing.Any) -> bool:
    if isinstance(obj, type):
        return False
    return _dataclasses.is_dataclass(obj) or isinstance(obj, _pydantic.BaseModel)


def _is_struct_type(tp: _typing.Any) -> bool:
    if not isinstance(tp, type):
        return False
    return _dataclasses.is_dataclass(tp) or issubclass(tp, _pydantic.BaseModel)


class _Field(_typing.NamedTuple):
    name: str
    key: str
    annotation: _typing.Any


def _fields(obj: _typing.Any, tag: str) -> list[_Field]:
    fields: list[_Field] = []
    if isinstance(obj, _pydantic.BaseModel):
        for name, info in type(obj).model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            key = extra.get(tag) or keys.lower_first(name)
            fields.append(_Field(name, str(key), info.annotation))
        return fields
    hints = _typing.get_type_hints(type(obj))
    for f in _dataclasses.fields(obj):
        if f.name.startswith("_"):
            continue
        key = f.metadata.get(tag) or keys.lower_first(f.name)
        fields.append(_Field(f.name, key, hints.get(f.name, _typing.Any)))
    return fields


def _list_element(annotation: _typing.Any) -> _typing.Any:
    """Return the element type of a list annotation, or None if it is not one."""
    origin = _typing.get_origin(annotation)
    if origin is _typing.Union or origin is _types.UnionType:
        args = [a for a in _typing.get_args(annotation) if a is not type(None)]
        if len(args) != 1:
            return None
        return _list_element(args[0])
    if origin is list:
        args = _typing.get_args(annotation)
        return args[0] if args else None
    return None


def _new_struct(cls: type) -> _typing.Any:
    """Create an instance of cls to unmarshal into, with defaults where the class has them."""
    if issubclass(cls, _pydantic.BaseModel):
        return cls.model_construct()
    kwargs: dict[str, _typing.Any] = {}
    for f in _dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not _dataclasses.MISSING:
            kwargs[f.name] = f.default
        elif f.default_factory is not _dataclasses.MISSING:
            kwargs[f.name] = f.default_factory()
        else:
            kwargs[f.name] = None
    return cls(**kwargs)


def _unmarshal(config: Config, node: str, obj: _typing.Any, path: str) -> Exception | None:
    if not _is_struct(obj):
        raise errors.InvalidStructError(obj)
    node_cfg = config.get_config(node)
    sep = config.separator
    first: Exception | None = None
    for field in _fields(obj, config.tag):
        field_path = _join(path, field.key, sep)
        current = getattr(obj, field.name, None)
        if _is_struct(current):
            err = _unmarshal(node_cfg, field.key, current, field_path)
            first = first or err
            continue
        element = _list_element(field.annotation)
        if element is not None and _is_struct_type(element):
            items, err = _unmarshal_object_array(node_cfg, field.key, element, field_path)
            first = first or err
            if items is not None:
                setattr(obj, field.name, items)
            continue
        v, ok = node_cfg.lookup(field.key)
        if not ok:
            continue
        try:
            setattr(obj, field.name, convert.convert(v, field.annotation))
        except errors.ConversionError as e:
            first = first or errors.UnmarshalError(field_path, e)
    return first


def _array_len(config: Config, key: str, path: str) -> tuple[int | None, Exception | None]:
    v, ok = config.lookup(key + "[]")
    if not ok:
        return None, None
    try:
        return convert.to_int(v), None
    except errors.ConversionError as e:
        return 0, errors.UnmarshalError(path + "[]", e)


def _unmarshal_object_array(
    config: Config, key: str, element: type, path: str
) -> tuple[list[_typing.Any] | None, Exception | None]:
    length, first = _array_len(config, key, path)
    if length is None:
        return None, None
    items = []
    for i in range(length):
        item = _new_struct(element)
        err = _unmarshal(config, f"{key}[{i}]", item, f"{path}[{i}]")
        first = first or err
        items.append(item)
    return items, first


def _unmarshal_to_map(
    config: Config, node: str, objmap: dict[str, _typing.Any], path: str
) -> Exception | None:
    node_cfg = config.get_config(node)
    sep = config.separator
    first: Exception | None = None
    for key, current in list(objmap.items()):
        key_path = _join(path, key, sep)
        if current is None:
            v, ok = node_cfg.lookup(key)
            if ok:
                objmap[key] = v
            continue
        if isinstance(current, dict):
            err = _unmarshal_to_map(node_cfg, key, current, key_path)
            first = first or err
            continue
        if isinstance(current, list) and current and isinstance(current[0], dict):
            items, err = _unmarshal_object_array_to_map(node_cfg, key, current[0], key_path)
            first = first or err
            if items:
                objmap[key] = items
            continue
        v, ok = node_cfg.lookup(key)
        if not ok:
            continue
        if isinstance(current, list):
            target: _typing.Any = list[type(current[0])] if current else list
        else:
            target = type(current)
        try:
            objmap[key] = convert.convert(v, target)
        except errors.ConversionError as e:
            first = first or errors.UnmarshalError(key_path, e)
    return first


def _unmarshal_object_array_to_map(
    config: Config, key: str, template: dict[str, _typing.Any], path: str
) -> tuple[list[dict[str, _typing.Any]] | None, Exception | None]:
    length, first = _array_len(config, key, path)
    if not length:
        return None, first
    items = []
    for i in range(length):
        item = _copy.deepcopy(template)
        err = _unmarshal_to_map(config, f"{key}[{i}]", item, f"{path}[{i}]")
        first = first or err
        items.append(item)
    return items, first
