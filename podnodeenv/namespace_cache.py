"""In-memory cache of Namespace objects kept current by a watch."""

import logging
import threading
import time
from typing import Dict, Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from . import labelselector
from .config import (
    DEFAULT_NODE_SELECTOR,
    PROJECT_NODE_SELECTOR,
    WATCH_RETRY_SECONDS,
    WATCH_TIMEOUT_SECONDS,
)
from .errors import NamespaceNotFound, SelectorParseError, SelectorResolutionError

logger = logging.getLogger(__name__)


class NamespaceCache:
    """Thread-safe cache for Namespace objects."""

    def __init__(
        self,
        v1: Optional[client.CoreV1Api] = None,
        default_node_selector: str = DEFAULT_NODE_SELECTOR,
    ):
        """
        Initialize the cache.

        Args:
            v1: CoreV1Api used to list and watch namespaces, and for live
                lookups of namespaces the watch has not delivered yet
            default_node_selector: Selector applied to namespaces without
                their own node selector annotation
        """
        self.v1 = v1
        self.default_node_selector = default_node_selector
        self._namespaces: Dict[str, client.V1Namespace] = {}
        self._lock = threading.RLock()
        self._synced = threading.Event()
        self._stop_event = threading.Event()
        self._resource_version: Optional[str] = None

    def running(self) -> bool:
        """Return True once the initial namespace list has been loaded."""
        return self._synced.is_set() and not self._stop_event.is_set()

    def mark_synced(self) -> None:
        """Mark the cache as populated."""
        self._synced.set()

    def add_or_update(self, namespace: client.V1Namespace) -> None:
        """Add or update a namespace in the cache."""
        name = namespace.metadata.name
        with self._lock:
            self._namespaces[name] = namespace
        logger.debug(f"Cached namespace: {name}")

    def remove(self, name: str) -> Optional[client.V1Namespace]:
        """
        Remove a namespace from the cache.

        Returns:
            The removed namespace or None
        """
        with self._lock:
            namespace = self._namespaces.pop(name, None)
        if namespace is not None:
            logger.debug(f"Removed namespace from cache: {name}")
        return namespace

    def clear(self) -> None:
        """Clear all namespaces from cache."""
        with self._lock:
            self._namespaces.clear()
        logger.info("Cleared namespace cache")

    def get_namespace(self, name: str) -> client.V1Namespace:
        """
        Get a namespace by name.

        The watch may lag behind namespace creation, so a miss is followed
        by one live lookup when an API client is available. The live result
        is not cached.

        Raises:
            NamespaceNotFound: the namespace does not exist or could not be read
        """
        with self._lock:
            namespace = self._namespaces.get(name)
        if namespace is not None:
            return namespace

        if self.v1 is None:
            raise NamespaceNotFound(name)

        try:
            namespace = self.v1.read_namespace(name=name)
        except ApiException as e:
            if e.status == 404:
                raise NamespaceNotFound(name) from e
            logger.error(f"Error reading namespace {name}: {e}")
            raise NamespaceNotFound(name, detail=str(e.reason)) from e

        logger.debug(f"Namespace {name} missing from cache, fetched live")
        return namespace

    def get_node_selector(self, namespace: client.V1Namespace) -> str:
        """Get the node selector string that applies to a namespace."""
        annotations = namespace.metadata.annotations or {}
        if PROJECT_NODE_SELECTOR in annotations:
            return annotations[PROJECT_NODE_SELECTOR] or ""
        return self.default_node_selector or ""

    def get_node_selector_map(self, namespace: client.V1Namespace) -> Dict[str, str]:
        """
        Get the node selector of a namespace as a map.

        Raises:
            SelectorResolutionError: the selector could not be parsed
        """
        selector = self.get_node_selector(namespace)
        try:
            return labelselector.parse(selector)
        except SelectorParseError as e:
            raise SelectorResolutionError(
                f"invalid node selector {selector!r} for namespace "
                f"{namespace.metadata.name}: {e}"
            ) from e

    def load_existing_namespaces(self) -> int:
        """
        Load existing namespaces into cache.

        Returns:
            Number of namespaces loaded
        """
        logger.info("Loading existing namespaces...")
        response = self.v1.list_namespace()

        with self._lock:
            self._namespaces = {ns.metadata.name: ns for ns in response.items}
        self._resource_version = response.metadata.resource_version or ""

        count = len(response.items)
        logger.info(f"Loaded {count} existing namespaces")
        return count

    def handle_namespace_event(self, event_type: str, namespace: client.V1Namespace) -> None:
        """
        Handle a namespace watch event.

        Args:
            event_type: ADDED, MODIFIED, or DELETED
            namespace: The namespace object from the event
        """
        if event_type in ("ADDED", "MODIFIED"):
            self.add_or_update(namespace)
        elif event_type == "DELETED":
            self.remove(namespace.metadata.name)

        if namespace.metadata.resource_version:
            self._resource_version = namespace.metadata.resource_version

    def watch_namespaces(self) -> None:
        """Watch for Namespace events in a loop."""
        logger.info("Starting namespace watcher...")
        w = watch.Watch()

        while not self._stop_event.is_set():
            try:
                if self._resource_version is None:
                    self.load_existing_namespaces()
                    self.mark_synced()

                for event in w.stream(
                    self.v1.list_namespace,
                    resource_version=self._resource_version,
                    timeout_seconds=WATCH_TIMEOUT_SECONDS
                ):
                    if self._stop_event.is_set():
                        break
                    self.handle_namespace_event(event["type"], event["object"])

            except ApiException as e:
                if e.status == 410:
                    # resource version too old, relist
                    logger.info("Namespace watch expired, relisting")
                    self._resource_version = None
                    continue
                logger.error(f"Namespace watch error: {e}")
                time.sleep(WATCH_RETRY_SECONDS)
            except Exception as e:
                logger.error(f"Unexpected error in namespace watcher: {e}")
                time.sleep(WATCH_RETRY_SECONDS)

        w.stop()

    def run(self) -> threading.Thread:
        """Start the namespace watcher in a daemon thread."""
        if self.v1 is None:
            raise ValueError("namespace cache needs a CoreV1Api to run")

        thread = threading.Thread(
            target=self.watch_namespaces,
            name="namespace-watcher",
            daemon=True
        )
        thread.start()
        return thread

    def stop(self) -> None:
        """Stop the namespace watcher."""
        logger.info("Stopping namespace watcher...")
        self._stop_event.set()
