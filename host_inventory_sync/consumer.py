"""
Change event consumer.

Subscribes to the persister output topic under a durable consumer group and
hands each message to the reconciler, one at a time. Offsets are committed
as soon as a message is received, before it is processed: a message whose
processing fails is not redelivered (at-most-once).
"""

import json
import logging
from typing import Any, Callable, Optional

from kafka import KafkaConsumer
from kafka.errors import KafkaError
from pydantic import ValidationError

from host_inventory_sync.config import Settings
from host_inventory_sync.errors import EventValidationError
from host_inventory_sync.models import ChangeEvent, SyncResult, SyncStatus
from host_inventory_sync.reconciler import HostInventoryReconciler

logger = logging.getLogger(__name__)

POLL_TIMEOUT_MS = 1000


def decode_event(value: Any) -> ChangeEvent:
    """
    Decode a raw message value into a ChangeEvent.

    Raises:
        EventValidationError: Value is not a JSON object or has bad field types
    """
    try:
        payload = json.loads(value)
    except (TypeError, ValueError) as e:
        raise EventValidationError(f"Message is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise EventValidationError("Message payload is not a JSON object")

    try:
        return ChangeEvent.from_payload(payload)
    except ValidationError as e:
        raise EventValidationError(f"Message has invalid fields: {e}") from e


class EventConsumer:
    """Runs the receive → reconcile loop."""

    def __init__(
        self,
        settings: Settings,
        reconciler: HostInventoryReconciler,
        consumer_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Args:
            settings: Queue host/port, topic and group settings
            reconciler: Processes each decoded event
            consumer_factory: Returns an opened consumer (defaults to KafkaConsumer)
        """
        self.settings = settings
        self.reconciler = reconciler
        self.consumer_factory = consumer_factory or self._open_kafka_consumer
        self.running = False
        self.messages_processed = 0
        self.messages_failed = 0

    def _open_kafka_consumer(self) -> KafkaConsumer:
        return KafkaConsumer(
            self.settings.queue_topic,
            bootstrap_servers=self.settings.bootstrap_servers,
            group_id=self.settings.queue_group_ref,
            client_id=self.settings.queue_client_ref,
            enable_auto_commit=False,
            auto_offset_reset="latest",
            max_poll_records=1,
        )

    def run(self):
        """Consume until stop() is called or the process is interrupted."""
        self.running = True
        consumer = None
        try:
            consumer = self.consumer_factory()
            logger.info(
                f"Subscribed to {self.settings.queue_topic} on {self.settings.bootstrap_servers} "
                f"as group {self.settings.queue_group_ref}"
            )

            while self.running:
                batch = consumer.poll(timeout_ms=POLL_TIMEOUT_MS)
                for records in batch.values():
                    for message in records:
                        self._commit(consumer)
                        self.handle_message(message)

        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down consumer...")
        finally:
            self.running = False
            if consumer is not None:
                consumer.close()
            logger.info(
                f"Consumer closed ({self.messages_processed} processed, {self.messages_failed} failed)"
            )

    def stop(self):
        """Exit the loop after the current poll."""
        self.running = False

    def _commit(self, consumer):
        try:
            consumer.commit()
        except KafkaError as e:
            logger.warning(f"Offset commit failed, message may be redelivered: {e}")

    def handle_message(self, message) -> Optional[SyncResult]:
        """
        Process one queue message. Never raises.

        Returns:
            SyncResult from the reconciler, or None if the message could not
            be decoded or processing raised
        """
        location = f"{getattr(message, 'topic', '?')}[{getattr(message, 'partition', '?')}]@{getattr(message, 'offset', '?')}"
        try:
            event = decode_event(message.value)
            result = self.reconciler.process(event)
        except EventValidationError as e:
            self.messages_failed += 1
            logger.error(f"Dropping message {location} ({e.kind}): {e}")
            return None
        except Exception as e:
            self.messages_failed += 1
            logger.exception(f"Unexpected error processing message {location}: {e}")
            return None

        self.messages_processed += 1
        if result.status == SyncStatus.FAILED:
            self.messages_failed += 1
        logger.debug(f"Message {location} handled: {result.status.value}")
        return result
