import json
import unittest
from types import SimpleNamespace
from unittest import mock

from kafka.errors import KafkaError

from host_inventory_sync.config import Settings
from host_inventory_sync.consumer import EventConsumer, decode_event
from host_inventory_sync.errors import EventValidationError
from host_inventory_sync.models import SyncResult, SyncStatus
from host_inventory_sync.reconciler import HostInventoryReconciler
from host_inventory_sync.tests.fakes import TENANT


def _message(value, offset=0):
    if not isinstance(value, (bytes, str)):
        value = json.dumps(value).encode("utf-8")
    return SimpleNamespace(topic="persister-output", partition=0, offset=offset, value=value)


def _payload(*vm_ids):
    return {
        "external_tenant": TENANT,
        "source": "source_uuid",
        "payload": {"vms": {"created": [{"id": i} for i in vm_ids]}},
    }


class FakeKafkaConsumer:
    """Serves one message per poll, then stops the owning EventConsumer."""

    def __init__(self, messages, journal):
        self.messages = list(messages)
        self.journal = journal
        self.owner = None
        self.closed = False

    def poll(self, timeout_ms=0):
        if not self.messages:
            self.owner.stop()
            return {}
        message = self.messages.pop(0)
        if isinstance(message, BaseException):
            raise message
        return {("persister-output", 0): [message]}

    def commit(self):
        self.journal.append("commit")

    def close(self):
        self.closed = True
        self.journal.append("close")


class EventConsumerTests(unittest.TestCase):
    def setUp(self):
        self.journal = []
        self.reconciler = mock.create_autospec(HostInventoryReconciler, instance=True)

        def process(event):
            self.journal.append(("process", event.vm_ids()))
            return SyncResult(status=SyncStatus.LINKED)

        self.reconciler.process.side_effect = process
        self.settings = Settings(queue_host="kafka", queue_port=9092)

    def _consumer(self, messages):
        fake = FakeKafkaConsumer(messages, self.journal)
        consumer = EventConsumer(self.settings, self.reconciler, consumer_factory=lambda: fake)
        fake.owner = consumer
        return consumer, fake

    def test_commits_before_processing_each_message(self):
        consumer, fake = self._consumer([_message(_payload(1), 0), _message(_payload(2, 3), 1)])

        consumer.run()

        self.assertEqual(self.journal, [
            "commit", ("process", ["1"]),
            "commit", ("process", ["2", "3"]),
            "close",
        ])
        self.assertEqual(consumer.messages_processed, 2)
        self.assertFalse(consumer.running)

    def test_failing_message_does_not_stop_consumer(self):
        def process(event):
            if event.vm_ids() == ["1"]:
                raise RuntimeError("unexpected")
            self.journal.append(("process", event.vm_ids()))
            return SyncResult(status=SyncStatus.LINKED)

        self.reconciler.process.side_effect = process
        consumer, fake = self._consumer([_message(_payload(1), 0), _message(_payload(2), 1)])

        with self.assertLogs("host_inventory_sync.consumer", level="ERROR"):
            consumer.run()

        self.assertIn(("process", ["2"]), self.journal)
        self.assertEqual(consumer.messages_failed, 1)
        self.assertEqual(consumer.messages_processed, 1)
        self.assertTrue(fake.closed)

    def test_undecodable_message_is_dropped(self):
        consumer, fake = self._consumer([_message(b"not json", 0), _message(_payload(1), 1)])

        consumer.run()

        self.assertEqual(self.reconciler.process.call_count, 1)
        self.assertEqual(consumer.messages_failed, 1)

    def test_failed_result_counts_as_failure(self):
        self.reconciler.process.side_effect = None
        self.reconciler.process.return_value = SyncResult(status=SyncStatus.FAILED)
        consumer, fake = self._consumer([])

        result = consumer.handle_message(_message(_payload(1)))

        self.assertEqual(result.status, SyncStatus.FAILED)
        self.assertEqual(consumer.messages_failed, 1)

    def test_transport_error_still_closes_consumer(self):
        consumer, fake = self._consumer([RuntimeError("broker gone")])

        with self.assertRaises(RuntimeError):
            consumer.run()

        self.assertTrue(fake.closed)

    def test_keyboard_interrupt_closes_consumer(self):
        consumer, fake = self._consumer([KeyboardInterrupt()])

        consumer.run()

        self.assertTrue(fake.closed)
        self.assertFalse(consumer.running)

    def test_commit_failure_is_logged(self):
        consumer, fake = self._consumer([_message(_payload(1))])
        fake.commit = mock.Mock(side_effect=KafkaError("rebalanced"))

        with self.assertLogs("host_inventory_sync.consumer", level="WARNING"):
            consumer.run()

        self.assertIn(("process", ["1"]), self.journal)

    @mock.patch("host_inventory_sync.consumer.KafkaConsumer")
    def test_default_consumer_uses_durable_group(self, kafka_consumer):
        consumer = EventConsumer(self.settings, self.reconciler)

        consumer.consumer_factory()

        args, kwargs = kafka_consumer.call_args
        self.assertEqual(args, ("platform.topological-inventory.persister-output",))
        self.assertEqual(kwargs["bootstrap_servers"], "kafka:9092")
        self.assertEqual(kwargs["group_id"], "host_inventory_sync_worker")
        self.assertFalse(kwargs["enable_auto_commit"])


class DecodeEventTests(unittest.TestCase):
    def test_decodes_json_bytes(self):
        event = decode_event(json.dumps(_payload(1, 2)).encode("utf-8"))
        self.assertEqual(event.tenant_account, TENANT)
        self.assertEqual(event.vm_ids(), ["1", "2"])

    def test_rejects_non_object(self):
        with self.assertRaises(EventValidationError):
            decode_event(b"[1, 2]")

    def test_rejects_bad_field_types(self):
        with self.assertRaises(EventValidationError):
            decode_event(json.dumps({"external_tenant": {"nested": True}}))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
