"""Process wiring for the Pod Node Environment admission webhook."""

import logging
from typing import Optional

from kubernetes import client

from . import admission, labelselector
from .config import DEFAULT_NODE_SELECTOR, PLUGIN_NAME, WEBHOOK_HOST, WEBHOOK_PORT
from .namespace_cache import NamespaceCache
from .plugins import PluginInitializer, Plugins
from .webhook import create_app, create_server

logger = logging.getLogger(__name__)


class NodeEnvironmentController:
    """
    Runs the namespace cache watcher and the admission webhook server.
    """

    def __init__(
        self,
        default_node_selector: str = DEFAULT_NODE_SELECTOR,
        host: str = WEBHOOK_HOST,
        port: int = WEBHOOK_PORT,
        certfile: Optional[str] = None,
        keyfile: Optional[str] = None,
    ):
        """
        Initialize the controller.

        Args:
            default_node_selector: Node selector for namespaces without one
            host: Address to listen on
            port: Port to listen on
            certfile: TLS certificate file
            keyfile: TLS private key file
        """
        self.host = host
        self.port = port
        self.certfile = certfile
        self.keyfile = keyfile
        # fail fast on a bad cluster default
        labelselector.parse(default_node_selector)
        self.v1 = client.CoreV1Api()

        self.namespace_cache = NamespaceCache(self.v1, default_node_selector)
        self.plugins = Plugins()
        admission.register(self.plugins)

        self.chain = self.plugins.new_from_plugins(
            [PLUGIN_NAME],
            PluginInitializer(namespace_cache=self.namespace_cache, kube_client=self.v1)
        )
        self.app = create_app(self.chain, self.namespace_cache)
        self.server = None

    def run(self) -> None:
        """Run the controller. Blocks until the webhook server exits."""
        logger.info("=" * 60)
        logger.info("Starting Pod Node Environment admission webhook")
        logger.info("=" * 60)
        logger.info(f"Default node selector: {self.namespace_cache.default_node_selector or '<none>'}")

        self.namespace_cache.run()

        self.server = create_server(
            self.app, self.host, self.port,
            certfile=self.certfile, keyfile=self.keyfile
        )

        # uvicorn handles Ctrl+C itself and returns from run()
        try:
            self.server.run()
        finally:
            self.namespace_cache.stop()

    def stop(self) -> None:
        """Stop the controller."""
        logger.info("Stopping webhook...")
        self.namespace_cache.stop()
        if self.server is not None:
            self.server.should_exit = True
