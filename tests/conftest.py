"""Shared fixtures."""

import pytest
from kubernetes import client

from podnodeenv.admission import Attributes, PodNodeEnvironment
from podnodeenv.namespace_cache import NamespaceCache


@pytest.fixture
def make_namespace():
    """Builder for V1Namespace objects."""
    def _make(name, annotations=None):
        return client.V1Namespace(
            metadata=client.V1ObjectMeta(name=name, annotations=annotations)
        )
    return _make


@pytest.fixture
def make_pod():
    """Builder for V1Pod objects."""
    def _make(name="web", namespace="team-a", node_selector=None):
        return client.V1Pod(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            spec=client.V1PodSpec(
                containers=[client.V1Container(name="app", image="nginx")],
                node_selector=node_selector,
            ),
        )
    return _make


@pytest.fixture
def pod_attributes():
    """Builder for pod CREATE Attributes."""
    def _make(pod, namespace="team-a", **kwargs):
        return Attributes(resource="pods", namespace=namespace, object=pod, **kwargs)
    return _make


@pytest.fixture
def cache():
    """A synced namespace cache without an API client."""
    namespace_cache = NamespaceCache()
    namespace_cache.mark_synced()
    return namespace_cache


@pytest.fixture
def plugin(cache):
    """A configured PodNodeEnvironment plugin."""
    p = PodNodeEnvironment()
    p.set_namespace_cache(cache)
    return p
