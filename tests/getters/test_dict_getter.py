"""Tests for confstack.getters.dict - in-memory getters."""

import threading as _threading

import confstack.getters as getters


class TestDictGetter:
    """Tests for the flat DictGetter."""

    def test_flat_keys(self) -> None:
        """Keys are matched exactly, not walked as paths."""
        g = getters.DictGetter({"db.host": "h", "db": {"port": 1}})
        assert g.get("db.host") == ("h", True)
        assert g.get("db.port") == (None, False)

    def test_set(self) -> None:
        """Values can be added and replaced."""
        g = getters.DictGetter()
        assert g.get("a") == (None, False)
        g.set("a", 1)
        g.set("a", 2)
        assert g.get("a") == (2, True)

    def test_values_copied(self) -> None:
        """The getter does not share the mapping it was given."""
        values = {"a": 1}
        g = getters.DictGetter(values)
        values["a"] = 2
        assert g.get("a") == (1, True)

    def test_concurrent_set_and_get(self) -> None:
        """Sets from several threads are all visible."""
        g = getters.DictGetter()

        def writer(n: int) -> None:
            for i in range(100):
                g.set(f"k{n}.{i}", i)
                g.get(f"k{n}.{i}")

        threads = [_threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(g.get(f"k{n}.99") == (99, True) for n in range(4))


class TestMapGetter:
    """Tests for the nested MapGetter."""

    def test_nested(self) -> None:
        """Keys are walked as paths."""
        g = getters.MapGetter({"db": {"hosts": ["a", "b"], "port": 1}})
        assert g.get("db.port") == (1, True)
        assert g.get("db.hosts[1]") == ("b", True)
        assert g.get("db") == (None, False)

    def test_separator(self) -> None:
        """The separator is configurable."""
        g = getters.MapGetter({"db": {"port": 1}}, separator=":")
        assert g.get("db:port") == (1, True)
