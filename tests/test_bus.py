"""Tests for the Redis message bus wrappers."""

import json
from unittest.mock import MagicMock

from shared.bus import SyncEventPublisher, SyncEventSubscriber, Topics
from shared.messages.workspace import WorkSpaceMessage


class TestSyncEventPublisher:
    def test_not_connected(self):
        pub = SyncEventPublisher("redis://localhost:1")
        assert not pub.is_connected
        assert pub.publish(Topics.REACHABILITY_MAP_FILTERED, {"a": 1}) is False

    def test_injected_client(self):
        client = MagicMock()
        pub = SyncEventPublisher(client=client)
        assert pub.is_connected
        assert pub.connect() is True
        client.ping.assert_not_called()

    def test_publish_model(self):
        client = MagicMock()
        pub = SyncEventPublisher(client=client)
        msg = WorkSpaceMessage(resolution=0.08)

        assert pub.publish(Topics.REACHABILITY_MAP_FILTERED, msg) is True

        topic, payload = client.publish.call_args.args
        assert topic == "reachability_map.filtered"
        assert WorkSpaceMessage.model_validate_json(payload) == msg

    def test_publish_dict_and_str(self):
        client = MagicMock()
        pub = SyncEventPublisher(client=client)
        pub.publish("t", {"x": 1})
        pub.publish("t", "raw")
        payloads = [c.args[1] for c in client.publish.call_args_list]
        assert json.loads(payloads[0]) == {"x": 1}
        assert payloads[1] == "raw"

    def test_publish_error_returns_false(self):
        client = MagicMock()
        client.publish.side_effect = ConnectionError("gone")
        pub = SyncEventPublisher(client=client)
        assert pub.publish("t", {"x": 1}) is False

    def test_close(self):
        client = MagicMock()
        pub = SyncEventPublisher(client=client)
        pub.close()
        client.close.assert_called_once()
        assert not pub.is_connected
        assert pub.publish("t", {}) is False


def _connected_subscriber():
    client = MagicMock()
    sub = SyncEventSubscriber(client=client)
    assert sub.connect()
    return sub, client, client.pubsub.return_value


class TestSyncEventSubscriber:
    def test_connect_failure(self):
        client = MagicMock()
        client.ping.side_effect = ConnectionError("refused")
        sub = SyncEventSubscriber(client=client)
        assert sub.connect() is False
        assert not sub.is_connected
        assert sub.subscribe("t", MagicMock()) is False

    def test_connect_uses_pubsub(self):
        sub, client, pubsub = _connected_subscriber()
        assert sub.is_connected
        client.pubsub.assert_called_once_with(ignore_subscribe_messages=True)

    def test_subscribe_once_per_topic(self):
        sub, _, pubsub = _connected_subscriber()
        assert sub.subscribe(Topics.PLANNING_SCENE, MagicMock())
        assert sub.subscribe(Topics.PLANNING_SCENE, MagicMock())
        assert pubsub.subscribe.call_count == 1
        assert Topics.PLANNING_SCENE in pubsub.subscribe.call_args.kwargs

    def test_dispatch_json(self):
        sub, _, _ = _connected_subscriber()
        handler = MagicMock()
        sub.subscribe(Topics.REACHABILITY_MAP, handler)

        sub._dispatch({"channel": Topics.REACHABILITY_MAP, "data": '{"resolution": 0.1}'})

        handler.assert_called_once_with(Topics.REACHABILITY_MAP, {"resolution": 0.1})

    def test_dispatch_bytes_channel_and_raw_data(self):
        sub, _, _ = _connected_subscriber()
        handler = MagicMock()
        sub.subscribe("t", handler)

        sub._dispatch({"channel": b"t", "data": "not json"})

        handler.assert_called_once_with("t", {"raw": "not json"})

    def test_handler_error_does_not_stop_others(self):
        sub, _, _ = _connected_subscriber()
        failing = MagicMock(side_effect=RuntimeError("boom"))
        ok = MagicMock()
        sub.subscribe("t", failing)
        sub.subscribe("t", ok)

        sub._dispatch({"channel": "t", "data": "{}"})

        ok.assert_called_once_with("t", {})

    def test_unsubscribe(self):
        sub, _, pubsub = _connected_subscriber()
        handler = MagicMock()
        sub.subscribe("t", handler)

        sub.unsubscribe("t")
        sub.unsubscribe("t")

        pubsub.unsubscribe.assert_called_once_with("t")
        sub._dispatch({"channel": "t", "data": "{}"})
        handler.assert_not_called()

    def test_listen_and_close(self):
        sub, client, pubsub = _connected_subscriber()
        worker = pubsub.run_in_thread.return_value

        sub.listen()
        sub.listen()
        sub.close()

        pubsub.run_in_thread.assert_called_once_with(
            sleep_time=SyncEventSubscriber.POLL_INTERVAL_S, daemon=True
        )
        worker.stop.assert_called_once()
        pubsub.close.assert_called_once()
        client.close.assert_called_once()
        assert not sub.is_connected
