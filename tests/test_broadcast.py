"""
Tests for the Broadcast Hub and monitor observers
"""
import asyncio
import json
import logging

import pytest

from examguard.proctor.api import monitor_events
from examguard.proctor.broadcast import BroadcastHub
from examguard.proctor.errors import ObserverDeliveryError


SNAPSHOT = {"activeSessions": 2, "totalViolations": 7}


def make_hub(**kwargs):
    return BroadcastHub(lambda: dict(SNAPSHOT), **kwargs)


class TestSubscribe:
    
    @pytest.mark.asyncio
    async def test_init_event_sent_immediately(self):
        """Test subscribers get the snapshot first"""
        hub = make_hub()
        observer = hub.subscribe()
        
        assert observer.pending() == [
            {"type": "init", "activeSessions": 2, "totalViolations": 7}
        ]
        assert hub.count() == 1
        hub.close()
    
    @pytest.mark.asyncio
    async def test_heartbeat_repeats_until_unsubscribed(self):
        """Test heartbeats repeat and stop on unsubscribe"""
        hub = make_hub(heartbeat_interval=0.01)
        observer = hub.subscribe()
        
        await asyncio.sleep(0.055)
        events = observer.pending()
        heartbeats = [e for e in events if e["type"] == "heartbeat"]
        assert events[0]["type"] == "init"
        assert len(heartbeats) >= 2
        
        hub.unsubscribe(observer.id)
        await asyncio.sleep(0.01)
        assert observer.heartbeat_running is False
        
        await asyncio.sleep(0.03)
        assert observer.pending() == []
    
    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self):
        """Test unsubscribing twice is harmless"""
        hub = make_hub()
        observer = hub.subscribe()
        
        assert hub.unsubscribe(observer.id) is True
        assert hub.unsubscribe(observer.id) is False
        assert hub.unsubscribe("never-registered") is False
        assert hub.count() == 0
    
    def test_subscribe_requires_event_loop(self):
        """Test subscribe outside an event loop fails"""
        hub = make_hub()
        with pytest.raises(RuntimeError):
            hub.subscribe()


class TestBroadcast:
    
    @pytest.mark.asyncio
    async def test_delivers_to_every_observer(self):
        """Test broadcast reaches all observers"""
        hub = make_hub()
        observers = [hub.subscribe() for _ in range(3)]
        for observer in observers:
            observer.pending()
        
        delivered = hub.broadcast({"type": "notification", "n": 1})
        
        assert delivered == 3
        for observer in observers:
            assert observer.pending() == [{"type": "notification", "n": 1}]
        hub.close()
    
    @pytest.mark.asyncio
    async def test_failed_observer_is_dropped_and_others_still_receive(self):
        """Test a full queue drops only that observer"""
        hub = make_hub(queue_size=2)
        healthy = hub.subscribe()
        stalled = hub.subscribe()
        healthy.pending()
        
        # stalled never drains: init + first event fill its queue
        assert hub.broadcast({"n": 1}) == 2
        healthy.pending()
        assert hub.broadcast({"n": 2}) == 1
        
        assert hub.count() == 1
        assert stalled.closed is True
        assert healthy.pending() == [{"n": 2}]
        hub.close()
    
    @pytest.mark.asyncio
    async def test_closed_observer_is_dropped(self):
        """Test closed observers are skipped"""
        hub = make_hub()
        gone = hub.subscribe()
        alive = hub.subscribe()
        gone.close()
        
        assert hub.broadcast({"n": 1}) == 1
        assert hub.count() == 1
        assert alive.pending()[-1] == {"n": 1}
        hub.close()
    
    @pytest.mark.asyncio
    async def test_push_to_closed_observer_raises(self):
        """Test pushing to a closed observer raises"""
        hub = make_hub()
        observer = hub.subscribe()
        observer.close()
        
        with pytest.raises(ObserverDeliveryError):
            observer.push({"n": 1})
        hub.close()
    
    @pytest.mark.asyncio
    async def test_broadcast_from_worker_thread(self):
        """Test pushes from another thread reach the loop"""
        hub = make_hub()
        observer = hub.subscribe()
        observer.pending()
        
        delivered = await asyncio.to_thread(hub.broadcast, {"n": 1})
        await asyncio.sleep(0)
        
        assert delivered == 1
        assert observer.pending() == [{"n": 1}]
        hub.close()
    
    @pytest.mark.asyncio
    async def test_subscribe_during_broadcast_does_not_disturb_delivery(self):
        """Test registry changes mid-broadcast do not affect delivery"""
        hub = make_hub()
        first = hub.subscribe()
        second = hub.subscribe()
        late = []
        
        original_push = first.push
        
        def push_and_subscribe(event):
            original_push(event)
            late.append(hub.subscribe())
        
        first.push = push_and_subscribe
        delivered = hub.broadcast({"n": 1})
        
        # The registry was copied before delivery started
        assert delivered == 2
        assert {"n": 1} in second.pending()
        assert hub.count() == 3
        assert late[0].pending() == [{"type": "init", **SNAPSHOT}]
        hub.close()


class TestNotify:
    
    @pytest.mark.asyncio
    async def test_wraps_and_logs_notification(self, caplog):
        """Test notifications are wrapped and logged"""
        hub = make_hub()
        observer = hub.subscribe()
        observer.pending()
        
        with caplog.at_level(logging.WARNING):
            hub.notify({"type": "exam_terminated", "sessionId": "sess_a", "studentId": "s1", "violations": 5})
        
        assert observer.pending() == [{
            "type": "notification",
            "event": "exam_terminated",
            "sessionId": "sess_a",
            "studentId": "s1",
            "violations": 5
        }]
        assert "ADMIN NOTIFICATION" in caplog.text
        hub.close()
    
    def test_notify_without_observers(self, caplog):
        """Test notify still logs with no monitors connected"""
        hub = make_hub()
        with caplog.at_level(logging.WARNING):
            assert hub.notify({"type": "exam_terminated"}) == 0
        assert "ADMIN NOTIFICATION" in caplog.text


class TestMonitorEvents:
    
    @pytest.mark.asyncio
    async def test_stream_yields_json_and_unsubscribes_on_close(self):
        """Each event is one JSON data message; disconnecting unsubscribes"""
        hub = make_hub()
        stream = monitor_events(hub)
        
        message = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert json.loads(message["data"]) == {"type": "init", **SNAPSHOT}
        assert hub.count() == 1
        
        hub.broadcast({"type": "notification", "event": "exam_terminated"})
        message = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert json.loads(message["data"])["event"] == "exam_terminated"
        
        # Client disconnect closes the generator
        await stream.aclose()
        assert hub.count() == 0
    
    @pytest.mark.asyncio
    async def test_stream_ends_when_observer_dropped(self):
        """Closing the hub ends every open stream"""
        hub = make_hub()
        stream = monitor_events(hub)
        await stream.__anext__()
        
        hub.close()
        
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert hub.count() == 0
    
    @pytest.mark.asyncio
    async def test_unstarted_stream_never_subscribes(self):
        """A client gone before the first event leaves no observer or heartbeat"""
        hub = make_hub(heartbeat_interval=0.01)
        stream = monitor_events(hub)
        
        await stream.aclose()
        await asyncio.sleep(0.03)
        
        assert hub.count() == 0


class TestSelfClosingObserver:
    
    @pytest.mark.asyncio
    async def test_closed_observer_leaves_registry(self):
        """An observer that closes itself is removed without waiting for a broadcast"""
        hub = make_hub()
        observer = hub.subscribe()
        
        observer.close()
        
        assert hub.count() == 0
        assert hub.unsubscribe(observer.id) is False
    
    @pytest.mark.asyncio
    async def test_overflow_from_worker_thread_deregisters(self):
        """A cross-thread push into a full queue drops the observer from the hub"""
        hub = make_hub(queue_size=1)
        observer = hub.subscribe()
        
        # init already fills the queue; the failure surfaces on the loop
        assert await asyncio.to_thread(hub.broadcast, {"n": 1}) == 1
        await asyncio.sleep(0)
        
        assert observer.closed is True
        assert hub.count() == 0
    
    @pytest.mark.asyncio
    async def test_failed_heartbeat_deregisters(self):
        """A heartbeat that cannot be delivered drops the observer from the hub"""
        hub = make_hub(heartbeat_interval=0.01, queue_size=1)
        observer = hub.subscribe()
        
        await asyncio.sleep(0.05)
        
        assert observer.closed is True
        assert observer.heartbeat_running is False
        assert hub.count() == 0
