"""
Configuration for Host Inventory Sync.

All endpoints and queue parameters are read once from the environment into a
Settings object that is handed to each component at construction.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

SOURCE_API_VERSION = "v0.1"


def build_source_api_url(
    host: str,
    port: int,
    app_name: Optional[str] = None,
    path_prefix: Optional[str] = None,
    scheme: str = "http",
) -> str:
    """
    Assemble the source inventory API base from its service settings.

    Args:
        host: API service host
        port: API service port
        app_name: Optional application name path segment
        path_prefix: Optional path prefix, with or without a leading slash
        scheme: URL scheme

    Returns:
        e.g. http://example.com:8080/this/is/a/path/topological-inventory/v0.1
    """
    segments = [s.strip("/") for s in (path_prefix, app_name) if s and s.strip("/")]
    segments.append(SOURCE_API_VERSION)
    return f"{scheme}://{host}:{port}/" + "/".join(segments)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Source inventory read API; an explicit URL wins over host/port assembly
    source_api_url: Optional[str] = None
    source_api_scheme: str = "http"
    source_api_host: str = Field(
        default="localhost",
        validation_alias=AliasChoices(
            "HOST_INVENTORY_SYNC_SOURCE_API_HOST", "TOPOLOGICAL_INVENTORY_API_SERVICE_HOST"
        ),
    )
    source_api_port: int = Field(
        default=3000,
        validation_alias=AliasChoices(
            "HOST_INVENTORY_SYNC_SOURCE_API_PORT", "TOPOLOGICAL_INVENTORY_API_SERVICE_PORT"
        ),
    )
    app_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HOST_INVENTORY_SYNC_APP_NAME", "APP_NAME"),
    )
    path_prefix: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HOST_INVENTORY_SYNC_PATH_PREFIX", "PATH_PREFIX"),
    )

    # Source inventory write (ingress) API
    ingress_api_url: str = "http://localhost:9292/api/topological-inventory-ingress/v0"

    # Destination host inventory
    host_inventory_api_url: str = "http://localhost:8080/api/inventory/v1"
    host_inventory_response_format: str = "bulk"  # bulk: data[0].host.id, legacy: {"id"}

    # Kafka
    queue_host: str = "localhost"
    queue_port: int = 9092
    queue_topic: str = "platform.topological-inventory.persister-output"
    queue_group_ref: str = "host_inventory_sync_worker"
    queue_client_ref: str = "host-inventory-sync"

    # Accepted for deployment compatibility; no metrics server is started
    metrics_port: int = 9394

    # HTTP
    connect_timeout: int = 15
    read_timeout: int = 30
    verify_ssl: bool = True

    # Parallel host creates per message (1 = sequential)
    create_workers: int = 1

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "HOST_INVENTORY_SYNC_"
        populate_by_name = True

    @property
    def source_api_base(self) -> str:
        """Effective source inventory API base URL."""
        if self.source_api_url:
            return self.source_api_url
        return build_source_api_url(
            self.source_api_host,
            self.source_api_port,
            app_name=self.app_name,
            path_prefix=self.path_prefix,
            scheme=self.source_api_scheme,
        )

    @property
    def bootstrap_servers(self) -> str:
        return f"{self.queue_host}:{self.queue_port}"

    @property
    def timeout(self):
        """(connect, read) timeout tuple for requests."""
        return (self.connect_timeout, self.read_timeout)
