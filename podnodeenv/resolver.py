"""Resolution of the effective node selector policy of a namespace."""

import logging
from dataclasses import dataclass, field
from typing import Dict

from .config import KUBE_PROJECT_NODE_SELECTOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamespacePolicy:
    """Node selector policy of a namespace, built per admission call."""
    namespace: str
    opt_out: bool = False
    node_selector: Dict[str, str] = field(default_factory=dict)


class NamespacePolicyResolver:
    """Derives NamespacePolicy objects from a namespace cache."""

    def __init__(self, cache):
        """
        Initialize the resolver.

        Args:
            cache: Object providing running(), get_namespace() and
                get_node_selector_map(), normally a NamespaceCache
        """
        self.cache = cache

    def ready(self) -> bool:
        """Check if the backing cache has finished its initial sync."""
        return self.cache.running()

    def resolve(self, namespace_name: str) -> NamespacePolicy:
        """
        Resolve the policy of a namespace.

        Raises:
            NamespaceNotFound: the namespace is not known to the cache
            SelectorResolutionError: the namespace node selector is invalid
        """
        namespace = self.cache.get_namespace(namespace_name)

        annotations = namespace.metadata.annotations or {}
        if KUBE_PROJECT_NODE_SELECTOR in annotations:
            logger.debug(f"Namespace {namespace_name} sets {KUBE_PROJECT_NODE_SELECTOR}, opting out")
            return NamespacePolicy(namespace=namespace_name, opt_out=True)

        node_selector = self.cache.get_node_selector_map(namespace)
        return NamespacePolicy(namespace=namespace_name, node_selector=node_selector)
