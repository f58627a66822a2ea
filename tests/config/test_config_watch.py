"""Tests for Config watching - Watcher and KeyWatcher."""

import asyncio as _asyncio
import typing as _typing

import pytest as _pytest

import confstack.config as config
import confstack.decoders as decoders
import confstack.errors as errors
import confstack.getters as getters
import confstack.loaders as loaders
import confstack.stack as stack
import confstack.value as value


class TestWatcher:
    """Watching the config as a whole."""

    @_pytest.mark.asyncio
    async def test_update_committed_before_return(self, watched_getter: _typing.Any) -> None:
        """By the time watch() returns, the change is visible."""
        g = watched_getter({"a": 1})
        cfg = config.Config(g)
        w = cfg.new_watcher()
        task = _asyncio.create_task(w.watch())
        await _asyncio.sleep(0)
        g.stage({"a": 2})
        await _asyncio.wait_for(task, timeout=1)
        assert cfg.get("a").raw == 2
        assert g.mock_watcher.commits == 1
        cfg.close()

    @_pytest.mark.asyncio
    async def test_every_watcher_notified(self, watched_getter: _typing.Any) -> None:
        """One change wakes watchers of the config and of its sub-configs."""
        g = watched_getter({"db.host": "a"})
        cfg = config.Config(g)
        watchers = [cfg.new_watcher(), cfg.get_config("db").new_watcher()]
        tasks = [_asyncio.create_task(w.watch()) for w in watchers]
        await _asyncio.sleep(0)
        g.stage({"db.host": "b"})
        await _asyncio.wait_for(_asyncio.gather(*tasks), timeout=1)
        assert cfg.get_config("db").get("host").raw == "b"
        cfg.close()

    @_pytest.mark.asyncio
    async def test_change_before_watch_is_seen(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """A watcher sees changes committed after it was created, even if not yet waiting."""
        g = watched_getter({"a": 1})
        cfg = config.Config(g)
        first = cfg.new_watcher()
        second = cfg.new_watcher()
        task = _asyncio.create_task(first.watch())
        await run_pending()
        g.stage({"a": 2})
        await _asyncio.wait_for(task, timeout=1)
        await _asyncio.wait_for(second.watch(), timeout=1)
        cfg.close()

    @_pytest.mark.asyncio
    async def test_unwatchable(self) -> None:
        """A config over an unwatchable getter cannot be watched."""
        cfg = config.Config(getters.DictGetter({}))
        with _pytest.raises(errors.UnwatchableError):
            await cfg.new_watcher().watch()

    @_pytest.mark.asyncio
    async def test_close_ends_watch(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """close() wakes pending watches with ClosedError, and later watches fail fast."""
        g = watched_getter()
        cfg = config.Config(g)
        task = _asyncio.create_task(cfg.watch())
        await run_pending()
        cfg.get_config("any").close()
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)
        with _pytest.raises(errors.ClosedError):
            await cfg.watch()
        assert g.mock_watcher.closed
        await run_pending()
        assert not [t for t in _asyncio.all_tasks() if t.get_name() == "confstack-updater"]

    @_pytest.mark.asyncio
    async def test_done_cancels(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """Setting done ends the watch with CanceledError."""
        cfg = config.Config(watched_getter())
        done = _asyncio.Event()
        task = _asyncio.create_task(cfg.watch(done))
        await run_pending()
        done.set()
        with _pytest.raises(errors.CanceledError):
            await _asyncio.wait_for(task, timeout=1)
        cfg.close()

    @_pytest.mark.asyncio
    async def test_temporary_error_retried(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """Temporary watch errors do not reach watchers."""
        g = watched_getter({"a": 1})
        cfg = config.Config(g)
        task = _asyncio.create_task(cfg.watch())
        await run_pending()
        g.mock_watcher.update(errors.TemporaryError(RuntimeError("flaky")))
        await run_pending()
        assert not task.done()
        g.stage({"a": 2})
        await _asyncio.wait_for(task, timeout=1)
        assert cfg.get("a").raw == 2
        cfg.close()

    @_pytest.mark.asyncio
    async def test_permanent_error_raised(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """A permanent watch error ends the config's watch and is raised to watchers."""
        g = watched_getter()
        cfg = config.Config(g)
        task = _asyncio.create_task(cfg.watch())
        await run_pending()
        g.mock_watcher.update(RuntimeError("gone"))
        with _pytest.raises(RuntimeError, match="gone"):
            await _asyncio.wait_for(task, timeout=1)
        with _pytest.raises(RuntimeError, match="gone"):
            await cfg.watch()
        cfg.close()


class TestKeyWatcher:
    """Watching a single key."""

    @_pytest.mark.asyncio
    async def test_first_watch_immediate(self, watched_getter: _typing.Any) -> None:
        """The first watch returns the current value without waiting."""
        cfg = config.Config(watched_getter({"a": 1}))
        kw = cfg.new_key_watcher("a")
        assert kw.key == "a"
        v = await _asyncio.wait_for(kw.watch(), timeout=1)
        assert v.raw == 1
        cfg.close()

    @_pytest.mark.asyncio
    async def test_only_changes_to_key(
        self, watched_getter: _typing.Any, run_pending: _typing.Any
    ) -> None:
        """Later watches return only when the key's value changes."""
        g = watched_getter({"a": 1, "b": 1})
        cfg = config.Config(g)
        kw = cfg.new_key_watcher("a")
        await kw.watch()
        task = _asyncio.create_task(kw.watch())
        await run_pending()
        g.stage({"a": 1, "b": 2})
        await run_pending()
        assert not task.done()
        g.stage({"a": 3, "b": 2})
        v = await _asyncio.wait_for(task, timeout=1)
        assert v.raw == 3
        cfg.close()

    @_pytest.mark.asyncio
    async def test_missing_key(self, watched_getter: _typing.Any, run_pending: _typing.Any) -> None:
        """A key that appears is reported, using the given error handler while it is missing."""
        g = watched_getter({})
        cfg = config.Config(g)
        kw = cfg.new_key_watcher("a", error_handler=value.ignore_errors)
        assert (await kw.watch()).raw is None
        task = _asyncio.create_task(kw.watch())
        await run_pending()
        g.stage({"a": "here"})
        assert (await _asyncio.wait_for(task, timeout=1)).raw == "here"
        cfg.close()

    @_pytest.mark.asyncio
    async def test_missing_key_raises_by_default(self, watched_getter: _typing.Any) -> None:
        """With no handler, a missing key raises NotFoundError."""
        cfg = config.Config(watched_getter({}))
        with _pytest.raises(errors.NotFoundError):
            await cfg.watch_key("a")
        cfg.close()

    @_pytest.mark.asyncio
    async def test_closed(self, watched_getter: _typing.Any, run_pending: _typing.Any) -> None:
        """Closing the config ends key watches."""
        cfg = config.Config(watched_getter({"a": 1}))
        kw = cfg.new_key_watcher("a")
        await kw.watch()
        task = _asyncio.create_task(kw.watch())
        await run_pending()
        cfg.close()
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)


class TestWatchBlobs:
    """End to end watching of blob sources through a stack."""

    @_pytest.mark.asyncio
    async def test_stack_of_blobs(self, run_pending: _typing.Any) -> None:
        """Changes to any blob in the stack reach key watchers, honouring priority."""
        high = loaders.BytesLoader(b'{"a": "high"}')
        low = loaders.BytesLoader(b'{"a": "low", "b": "low"}')
        root = stack.Stack(
            getters.BlobGetter(high, decoders.JsonDecoder()),
            getters.BlobGetter(low, decoders.JsonDecoder()),
        )
        with config.Config(root) as cfg:
            kw_a = cfg.new_key_watcher("a")
            kw_b = cfg.new_key_watcher("b")
            assert (await kw_a.watch()).raw == "high"
            assert (await kw_b.watch()).raw == "low"

            low.set(b'{"a": "low2", "b": "low2"}')
            assert (await _asyncio.wait_for(kw_b.watch(), timeout=1)).raw == "low2"
            assert cfg.get("a").raw == "high"

            high.set(b"{}")
            assert (await _asyncio.wait_for(kw_a.watch(), timeout=1)).raw == "low2"
        await run_pending()


class TestSourceClosed:
    """Watches end when the config's source stops on its own."""

    @_pytest.mark.asyncio
    async def test_blob_closed(self) -> None:
        """Closing the blob behind a config ends pending and later watches."""
        blob = getters.BlobGetter(loaders.BytesLoader(b'{"a": 1}'), decoders.JsonDecoder())
        cfg = config.Config(blob)
        task = _asyncio.create_task(cfg.new_watcher().watch())
        await _asyncio.sleep(0)
        blob.close()
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(cfg.watch(), timeout=1)
        assert cfg.get("a").raw == 1
        await cfg.aclose()

    @_pytest.mark.asyncio
    async def test_every_stacked_source_closed(self, run_pending: _typing.Any) -> None:
        """Once every source in a stack has closed, watches end."""
        blobs = [
            getters.BlobGetter(loaders.BytesLoader(b"{}"), decoders.JsonDecoder())
            for _ in range(2)
        ]
        cfg = config.Config(stack.Stack(*blobs))
        task = _asyncio.create_task(cfg.watch())
        await run_pending()
        blobs[0].close()
        await run_pending()
        assert not task.done()
        blobs[1].close()
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)
        await cfg.aclose()


class TestAsyncClose:
    """aclose() and async with wait for background tasks."""

    @_pytest.mark.asyncio
    async def test_async_with(self, run_pending: _typing.Any) -> None:
        """Leaving async with leaves no updater or watch loop tasks running."""
        blobs = [
            getters.BlobGetter(loaders.BytesLoader(b'{"a": 1}'), decoders.JsonDecoder())
            for _ in range(2)
        ]
        async with config.Config(stack.Stack(*blobs)) as cfg:
            task = _asyncio.create_task(cfg.watch())
            await run_pending()
        running = [
            t.get_name()
            for t in _asyncio.all_tasks()
            if t.get_name().startswith("confstack-") and not t.done()
        ]
        assert running == []
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)

    @_pytest.mark.asyncio
    async def test_aclose_idempotent(self, watched_getter: _typing.Any) -> None:
        """aclose() may follow close(), and be repeated."""
        cfg = config.Config(watched_getter())
        task = _asyncio.create_task(cfg.watch())
        await _asyncio.sleep(0)
        cfg.close()
        await cfg.aclose()
        await cfg.aclose()
        with _pytest.raises(errors.ClosedError):
            await _asyncio.wait_for(task, timeout=1)
