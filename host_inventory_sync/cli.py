"""
Host Inventory Sync process entry point.

Builds Settings from the environment, applies command-line overrides, wires
the clients, reconciler and consumer together and runs the consumer loop.
"""

import argparse
import logging
import sys
from typing import List, Optional

from host_inventory_sync import __version__
from host_inventory_sync.clients import HostInventoryClient, SourceInventoryClient
from host_inventory_sync.config import Settings
from host_inventory_sync.consumer import EventConsumer
from host_inventory_sync.reconciler import HostInventoryReconciler

logger = logging.getLogger("host_inventory_sync")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="host-inventory-sync",
        description="Create host inventory records for VMs reported by the source inventory",
    )
    parser.add_argument("--source-api", dest="source_api_url", help="Source inventory API base URL")
    parser.add_argument("--ingress-api", dest="ingress_api_url", help="Source inventory ingress API base URL")
    parser.add_argument("--host-inventory-api", dest="host_inventory_api_url", help="Host inventory API base URL")
    parser.add_argument("--queue-host", help="Kafka host")
    parser.add_argument("--queue-port", type=int, help="Kafka port")
    parser.add_argument("--metrics-port", type=int, help="Metrics port (accepted, not served)")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with any command-line values layered on top."""
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    settings = Settings()
    return settings.model_copy(update=overrides) if overrides else settings


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_consumer(settings: Settings) -> EventConsumer:
    client_kwargs = {"timeout": settings.timeout, "verify_ssl": settings.verify_ssl}
    source_client = SourceInventoryClient(
        settings.source_api_base, settings.ingress_api_url, **client_kwargs
    )
    host_client = HostInventoryClient(
        settings.host_inventory_api_url,
        response_format=settings.host_inventory_response_format,
        **client_kwargs,
    )
    reconciler = HostInventoryReconciler(
        source_client, host_client, create_workers=settings.create_workers
    )
    return EventConsumer(settings, reconciler)


def main(argv: Optional[List[str]] = None) -> int:
    settings = build_settings(parse_args(argv))
    configure_logging(settings.log_level)

    logger.info("=" * 70)
    logger.info(f"Host Inventory Sync v{__version__}")
    logger.info("=" * 70)
    logger.info(f"Source API: {settings.source_api_base}")
    logger.info(f"Ingress API: {settings.ingress_api_url}")
    logger.info(f"Host Inventory API: {settings.host_inventory_api_url} ({settings.host_inventory_response_format})")
    logger.info(f"Queue: {settings.bootstrap_servers} topic={settings.queue_topic}")
    logger.info(f"Create workers: {settings.create_workers}")
    logger.info("=" * 70)

    consumer = build_consumer(settings)
    try:
        consumer.run()
    finally:
        consumer.reconciler.source_client.close()
        consumer.reconciler.host_client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
