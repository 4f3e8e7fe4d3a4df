#!/usr/bin/env python3
"""
Pod Node Environment - Entry Point

An admission webhook that merges each namespace's default node selector
into the pods created in it, and rejects pods whose node selector
conflicts with it.

Usage:
    python run.py [--default-node-selector SELECTOR] [--port PORT] [--in-cluster]
"""

import argparse
import logging
import sys

from kubernetes import config

from podnodeenv.config import DEFAULT_NODE_SELECTOR, WEBHOOK_HOST, WEBHOOK_PORT
from podnodeenv.controller import NodeEnvironmentController
from podnodeenv.errors import AdmissionError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Pod Node Environment - Apply namespace node selectors to pods"
    )
    parser.add_argument(
        "--default-node-selector",
        default=DEFAULT_NODE_SELECTOR,
        help="Node selector for namespaces without openshift.io/node-selector (e.g. 'region=east')"
    )
    parser.add_argument(
        "--host",
        default=WEBHOOK_HOST,
        help=f"Address to listen on (default: {WEBHOOK_HOST})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=WEBHOOK_PORT,
        help=f"Port to listen on (default: {WEBHOOK_PORT})"
    )
    parser.add_argument(
        "--tls-cert-file",
        help="TLS certificate file"
    )
    parser.add_argument(
        "--tls-key-file",
        help="TLS private key file"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    args = parser.parse_args()

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load Kubernetes configuration
    try:
        if args.in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster configuration")
        else:
            config.load_kube_config()
            logger.info("Loaded kubeconfig from default location")
    except Exception as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    try:
        controller = NodeEnvironmentController(
            default_node_selector=args.default_node_selector,
            host=args.host,
            port=args.port,
            certfile=args.tls_cert_file,
            keyfile=args.tls_key_file
        )
    except AdmissionError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        controller.run()
    except KeyboardInterrupt:
        controller.stop()
        logger.info("Webhook stopped")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Webhook error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
