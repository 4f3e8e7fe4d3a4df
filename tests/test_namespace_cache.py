"""Tests for NamespaceCache."""

from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from podnodeenv.config import PROJECT_NODE_SELECTOR
from podnodeenv.errors import NamespaceNotFound, SelectorResolutionError
from podnodeenv.namespace_cache import NamespaceCache


class TestNamespaceCache:
    """Test the in-memory store."""

    def test_not_running_until_synced(self):
        cache = NamespaceCache()
        assert cache.running() is False
        cache.mark_synced()
        assert cache.running() is True
        cache.stop()
        assert cache.running() is False

    def test_add_get_remove(self, cache, make_namespace):
        ns = make_namespace("team-a")
        cache.add_or_update(ns)
        assert cache.get_namespace("team-a") is ns

        assert cache.remove("team-a") is ns
        assert cache.remove("team-a") is None
        with pytest.raises(NamespaceNotFound):
            cache.get_namespace("team-a")

    def test_clear(self, cache, make_namespace):
        cache.add_or_update(make_namespace("a"))
        cache.add_or_update(make_namespace("b"))
        cache.clear()
        for name in ("a", "b"):
            with pytest.raises(NamespaceNotFound):
                cache.get_namespace(name)

    def test_missing_namespace_live_lookup(self, make_namespace):
        v1 = MagicMock()
        ns = make_namespace("late")
        v1.read_namespace.return_value = ns
        cache = NamespaceCache(v1)

        assert cache.get_namespace("late") is ns
        v1.read_namespace.assert_called_once_with(name="late")

    def test_live_lookup_is_not_cached(self, make_namespace):
        v1 = MagicMock()
        v1.read_namespace.return_value = make_namespace("late")
        cache = NamespaceCache(v1)
        cache.get_namespace("late")

        # the namespace is deleted before the watch delivers it
        v1.read_namespace.side_effect = ApiException(status=404, reason="Not Found")
        with pytest.raises(NamespaceNotFound):
            cache.get_namespace("late")
        assert v1.read_namespace.call_count == 2

    @pytest.mark.parametrize("status", [404, 500])
    def test_missing_namespace_live_lookup_fails(self, status):
        v1 = MagicMock()
        v1.read_namespace.side_effect = ApiException(status=status, reason="boom")
        cache = NamespaceCache(v1)

        with pytest.raises(NamespaceNotFound):
            cache.get_namespace("ghost")


class TestNodeSelector:
    """Test node selector derivation."""

    def test_annotation_wins_over_default(self, make_namespace):
        cache = NamespaceCache(default_node_selector="region=west")
        ns = make_namespace("a", {PROJECT_NODE_SELECTOR: "zone=east,disk=ssd"})
        assert cache.get_node_selector(ns) == "zone=east,disk=ssd"
        assert cache.get_node_selector_map(ns) == {"zone": "east", "disk": "ssd"}

    def test_empty_annotation_overrides_default(self, make_namespace):
        cache = NamespaceCache(default_node_selector="region=west")
        ns = make_namespace("a", {PROJECT_NODE_SELECTOR: ""})
        assert cache.get_node_selector_map(ns) == {}

    def test_default_used_without_annotation(self, make_namespace):
        cache = NamespaceCache(default_node_selector="region=west")
        assert cache.get_node_selector_map(make_namespace("a")) == {"region": "west"}
        assert cache.get_node_selector_map(make_namespace("b", {"other": "x"})) == {"region": "west"}

    def test_no_default(self, make_namespace):
        cache = NamespaceCache()
        assert cache.get_node_selector_map(make_namespace("a")) == {}

    def test_invalid_selector(self, make_namespace):
        cache = NamespaceCache()
        ns = make_namespace("a", {PROJECT_NODE_SELECTOR: "zone!=east"})
        with pytest.raises(SelectorResolutionError):
            cache.get_node_selector_map(ns)


class TestNamespaceWatch:
    """Test list and watch event handling."""

    def test_load_existing_namespaces(self, make_namespace):
        v1 = MagicMock()
        v1.list_namespace.return_value = client.V1NamespaceList(
            items=[make_namespace("a"), make_namespace("b")],
            metadata=client.V1ListMeta(resource_version="42"),
        )
        cache = NamespaceCache(v1)

        assert cache.load_existing_namespaces() == 2
        assert cache.get_namespace("a").metadata.name == "a"
        assert cache.get_namespace("b").metadata.name == "b"
        v1.read_namespace.assert_not_called()

    def test_handle_events(self, cache, make_namespace):
        ns = make_namespace("a")
        cache.handle_namespace_event("ADDED", ns)
        assert cache.get_namespace("a") is ns

        updated = make_namespace("a", {PROJECT_NODE_SELECTOR: "zone=east"})
        cache.handle_namespace_event("MODIFIED", updated)
        assert cache.get_namespace("a") is updated

        cache.handle_namespace_event("DELETED", updated)
        with pytest.raises(NamespaceNotFound):
            cache.get_namespace("a")

    def test_run_requires_client(self):
        with pytest.raises(ValueError):
            NamespaceCache().run()
