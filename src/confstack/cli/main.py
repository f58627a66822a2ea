"""
Main CLI entry point for confstack.

Reads configuration from a stack of files and the environment, and prints
or watches it:

    confstack -f local.yaml -f base.json get db.host
    confstack --env-prefix APP_ -f app.yaml dump --json
    confstack -f app.yaml watch db.host

Files given first take priority, and the environment takes priority over
all files. Defaults for the global options are read from CONFSTACK_*
environment variables, e.g. CONFSTACK_ENV_PREFIX and CONFSTACK_POLL_INTERVAL.
"""

from __future__ import annotations

import asyncio as _asyncio
import collections.abc as _abc
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import click as _click
import rich.console as _rich_console
import rich.logging as _rich_logging
import rich.syntax as _rich_syntax
import rich.text as _rich_text
import yaml as _yaml

import confstack
import confstack.config as config
import confstack.constants as constants
import confstack.decoders as decoders
import confstack.errors as errors
import confstack.getters as getters
import confstack.loaders as loaders
import confstack.stack as stack
import confstack.value as value

_logger = _logging.getLogger(__name__)

CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

_DECODERS: dict[str, type[getters.Decoder]] = {
    ".json": decoders.JsonDecoder,
    ".yaml": decoders.YamlDecoder,
    ".yml": decoders.YamlDecoder,
}

_TYPES: dict[str, _typing.Callable[[value.Value], _typing.Any]] = {
    "raw": lambda v: v.raw,
    "str": value.Value.as_str,
    "int": value.Value.as_int,
    "uint": value.Value.as_uint,
    "float": value.Value.as_float,
    "bool": value.Value.as_bool,
    "duration": value.Value.as_duration,
    "time": value.Value.as_time,
    "list": value.Value.as_list,
}


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _cli_settings() -> config.Config:
    """Config for the CLI itself, from CONFSTACK_* environment variables."""
    return config.Config(getters.EnvGetter(constants.ENV_PREFIX), error_handler=value.ignore_errors)


def _configure_logging(verbose: bool) -> None:
    level = _logging.DEBUG if verbose else _logging.WARNING
    _logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_rich_logging.RichHandler(console=_rich_console.Console(stderr=True))],
        force=True,
    )


def _blob_getter(
    path: _pathlib.Path, *, watch: bool, poll_interval: float, separator: str
) -> getters.BlobGetter:
    decoder = _DECODERS.get(path.suffix.lower())
    if decoder is None:
        raise _click.ClickException(
            f"Unsupported file type: {path} (expected one of {', '.join(sorted(_DECODERS))})"
        )
    loader = loaders.FileLoader(path, watch=watch, poll_interval=poll_interval)
    try:
        return getters.BlobGetter(loader, decoder(), separator=separator)
    except errors.ConfigError as e:
        raise _click.ClickException(str(e)) from e


class _Sources:
    """The sources selected by the global options."""

    def __init__(
        self,
        files: tuple[_pathlib.Path, ...],
        env_prefix: str | None,
        separator: str,
        poll_interval: float,
    ) -> None:
        self.files = files
        self.env_prefix = env_prefix
        self.separator = separator
        self.poll_interval = poll_interval

    def env_getter(self) -> getters.EnvGetter | None:
        if self.env_prefix is None:
            return None
        return getters.EnvGetter(
            self.env_prefix,
            key_replacer=lambda k: k.replace("_", self.separator).lower(),
        )

    def build(self, *, watch: bool = False) -> tuple[config.Config, list[getters.BlobGetter]]:
        blobs = [
            _blob_getter(p, watch=watch, poll_interval=self.poll_interval, separator=self.separator)
            for p in self.files
        ]
        root = stack.Stack(*blobs)
        root.insert(self.env_getter())
        return config.Config(root, separator=self.separator), blobs


def _merge(
    high: dict[str, _typing.Any], low: _abc.Mapping[str, _typing.Any]
) -> dict[str, _typing.Any]:
    """Merge low into high, with high taking priority and nested dicts merged."""
    merged = dict(low)
    for k, v in high.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _merge(v, merged[k])
        else:
            merged[k] = v
    return merged


def _nest(flat: _abc.Mapping[str, _typing.Any], separator: str) -> dict[str, _typing.Any]:
    """Expand flat dotted keys into nested dicts."""
    nested: dict[str, _typing.Any] = {}
    for key, v in flat.items():
        node = nested
        *path, leaf = key.split(separator) if separator else [key]
        for part in path:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = v
    return nested


def _print_value(console: _rich_console.Console, key: str, v: _typing.Any, as_json: bool) -> None:
    if as_json:
        _click.echo(_json.dumps({key: v}, default=str))
    else:
        console.print(_rich_text.Text.assemble((key, "bold"), " = ", repr(v)))


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(confstack.__version__, "-V", "--version", prog_name="confstack")
@_click.option(
    "-f",
    "--file",
    "files",
    multiple=True,
    type=_click.Path(exists=True, dir_okay=False, path_type=_pathlib.Path),
    help="Configuration file (JSON or YAML). Repeatable; earlier files take priority.",
)
@_click.option(
    "--env-prefix",
    type=str,
    default=None,
    help="Include environment variables with this prefix, above all files.",
)
@_click.option(
    "--separator",
    type=str,
    default=None,
    help=f"Separator between tiers in keys (default: {constants.DEFAULT_SEPARATOR!r})",
)
@_click.option("--verbose", is_flag=True, help="Enable debug logging")
@_click.pass_context
def cli(
    ctx: _click.Context,
    files: tuple[_pathlib.Path, ...],
    env_prefix: str | None,
    separator: str | None,
    verbose: bool,
) -> None:
    """confstack - layered configuration from files and the environment."""
    _configure_logging(verbose)
    settings = _cli_settings()
    if env_prefix is None:
        env_prefix = settings.lookup("env.prefix")[0]
    if separator is None:
        separator = settings.get("separator").as_str() or constants.DEFAULT_SEPARATOR
    poll_interval = settings.get("poll.interval").as_float() or constants.DEFAULT_POLL_INTERVAL
    ctx.ensure_object(dict)
    ctx.obj["sources"] = _Sources(files, env_prefix, separator, poll_interval)
    _logger.debug("Sources: files=%s env_prefix=%r", [str(f) for f in files], env_prefix)


@cli.command()
@_click.argument("key")
@_click.option(
    "--type",
    "as_type",
    type=_click.Choice(sorted(_TYPES)),
    default="raw",
    show_default=True,
    help="Convert the value to this type",
)
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.pass_context
def get(ctx: _click.Context, key: str, as_type: str, as_json: bool) -> None:
    """Print the value of KEY.

    Exits with an error if KEY is not found, or cannot be converted.
    """
    sources: _Sources = ctx.obj["sources"]
    cfg, _ = sources.build()
    try:
        v = _TYPES[as_type](cfg.must_get(key))
    except errors.ConfigError as e:
        raise _click.ClickException(str(e)) from e
    _print_value(_rich_console.Console(), key, v, as_json)


@cli.command()
@_click.argument("node", required=False, default="")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option(
    "--color/--no-color",
    "use_color",
    default=None,
    help="Enable/disable syntax highlighting (default: auto-detect TTY)",
)
@_click.pass_context
def dump(ctx: _click.Context, node: str, as_json: bool, use_color: bool | None) -> None:
    """Print the merged configuration, or the subtree at NODE.

    Files are merged with earlier files taking priority, then the
    environment, if selected, is merged over them.
    """
    sources: _Sources = ctx.obj["sources"]
    _, blobs = sources.build()
    merged: dict[str, _typing.Any] = {}
    for blob in reversed(blobs):
        merged = _merge(blob.snapshot, merged)
    env = sources.env_getter()
    if env is not None:
        merged = _merge(_nest({k: env.get(k)[0] for k in env.keys()}, sources.separator), merged)
    if node:
        for part in node.split(sources.separator):
            child = merged.get(part) if isinstance(merged, dict) else None
            if not isinstance(child, dict):
                raise _click.ClickException(f"Unknown node: {node}")
            merged = child

    if as_json:
        _click.echo(_json.dumps(merged, indent=2, default=str))
        return
    text = _yaml.safe_dump(merged, default_flow_style=False, sort_keys=False)
    console = _rich_console.Console(force_terminal=use_color, no_color=use_color is False)
    if use_color is False or (use_color is None and not console.is_terminal):
        _click.echo(text, nl=False)
        return
    console.print(_rich_syntax.Syntax(text, "yaml", theme="monokai", background_color="default"))


@cli.command()
@_click.argument("key")
@_click.option(
    "--count",
    type=int,
    default=0,
    help="Exit after printing this many values (default: watch until interrupted)",
)
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.pass_context
def watch(ctx: _click.Context, key: str, count: int, as_json: bool) -> None:
    """Print the value of KEY, and again each time it changes.

    Files are polled for changes.
    """
    sources: _Sources = ctx.obj["sources"]
    cfg, _ = sources.build(watch=True)
    console = _rich_console.Console()

    async def run() -> None:
        with cfg:
            kw = cfg.new_key_watcher(key, error_handler=value.ignore_errors)
            printed = 0
            while not count or printed < count:
                v = await kw.watch()
                _print_value(console, key, v.raw, as_json)
                printed += 1

    try:
        _run_async(run())
    except errors.UnwatchableError as e:
        raise _click.ClickException("Nothing to watch - provide at least one file with -f") from e
    except errors.ConfigError as e:
        raise _click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        pass


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="confstack")


if __name__ == "__main__":
    main()
