"""Tests for confstack.tree - key resolution within nested mappings."""

import pytest as _pytest

import confstack.tree as tree

CONFIG = {
    "name": "svc",
    "db": {
        "host": "localhost",
        "ports": [5432, 5433],
        "replicas": [{"host": "r0"}, {"host": "r1", "tags": ["a", "b"]}],
    },
    "matrix": [[1, 2], [3, 4, 5]],
    "flat.key": "flat",
    "empty": [],
}


class TestGet:
    """Tests for tree.get."""

    def test_leaf(self) -> None:
        """Nested leaves are found by path."""
        assert tree.get(CONFIG, "name", ".") == ("svc", True)
        assert tree.get(CONFIG, "db.host", ".") == ("localhost", True)

    def test_node_is_not_found(self) -> None:
        """Nodes are not leaves."""
        assert tree.get(CONFIG, "db", ".") == (None, False)

    def test_missing(self) -> None:
        """Unknown keys, and keys below leaves, are not found."""
        assert tree.get(CONFIG, "db.user", ".") == (None, False)
        assert tree.get(CONFIG, "name.first", ".") == (None, False)
        assert tree.get(CONFIG, "nope.host", ".") == (None, False)

    def test_full_key_preferred(self) -> None:
        """A key containing the separator matches a flat entry."""
        assert tree.get(CONFIG, "flat.key", ".") == ("flat", True)

    def test_scalar_list(self) -> None:
        """Lists of scalars are returned whole."""
        assert tree.get(CONFIG, "db.ports", ".") == ([5432, 5433], True)

    def test_object_list_placeholders(self) -> None:
        """Lists of objects are returned as placeholders of the same length."""
        assert tree.get(CONFIG, "db.replicas", ".") == ([None, None], True)

    def test_array_element(self) -> None:
        """Elements are addressed by index."""
        assert tree.get(CONFIG, "db.ports[1]", ".") == (5433, True)
        assert tree.get(CONFIG, "db.replicas[1].host", ".") == ("r1", True)
        assert tree.get(CONFIG, "db.replicas[1].tags[0]", ".") == ("a", True)

    def test_nested_array_element(self) -> None:
        """Nested lists are addressed by multiple indices."""
        assert tree.get(CONFIG, "matrix[1][2]", ".") == (5, True)
        assert tree.get(CONFIG, "matrix[0]", ".") == ([1, 2], True)

    def test_array_element_out_of_range(self) -> None:
        """Indices past the end are not found."""
        assert tree.get(CONFIG, "db.ports[2]", ".") == (None, False)
        assert tree.get(CONFIG, "db.replicas[5].host", ".") == (None, False)

    def test_object_element_is_a_node(self) -> None:
        """An element that is an object is a node, not a leaf."""
        assert tree.get(CONFIG, "db.replicas[0]", ".") == (None, False)

    def test_array_length(self) -> None:
        """name[] gives the length of a list."""
        assert tree.get(CONFIG, "db.ports[]", ".") == (2, True)
        assert tree.get(CONFIG, "db.replicas[]", ".") == (2, True)
        assert tree.get(CONFIG, "matrix[1][]", ".") == (3, True)
        assert tree.get(CONFIG, "empty[]", ".") == (0, True)

    def test_length_of_non_list(self) -> None:
        """Only lists have a length."""
        assert tree.get(CONFIG, "name[]", ".") == (None, False)

    @_pytest.mark.parametrize("node", [None, "text", 3, ["a"]])
    def test_non_mapping_root(self, node: object) -> None:
        """Anything other than a mapping misses."""
        assert tree.get(node, "a", ".") == (None, False)

    def test_custom_separator(self) -> None:
        """The separator is configurable."""
        assert tree.get({"a": {"b": 1}}, "a/b", "/") == (1, True)
        assert tree.get({"a": {"b": 1}}, "a.b", "/") == (None, False)

    def test_empty_separator_disables_nesting(self) -> None:
        """With no separator only full keys match."""
        assert tree.get({"a.b": 1, "a": {"b": 2}}, "a.b", "") == (1, True)
        assert tree.get({"a": {"b": 2}}, "a.b", "") == (None, False)
