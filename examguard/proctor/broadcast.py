"""
Broadcast Hub - Registry of live monitor connections and event fan-out

Each monitor connection is an Observer holding a bounded asyncio queue
and a heartbeat task. The hub pushes the initial snapshot on subscribe,
fans notifications out to every observer, and drops observers whose
delivery fails.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from .errors import ObserverDeliveryError
from .utils.logging import log_admin_notification

logger = logging.getLogger(__name__)

Event = Dict[str, Any]

HEARTBEAT_EVENT: Event = {"type": "heartbeat"}

_CLOSED = object()


class Observer:
    """
    One connected monitor.
    
    `push` may be called from any thread; events are handed to the
    observer's event loop with call_soon_threadsafe when needed.
    `on_close` runs once, whichever path closes the observer.
    """
    
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue_size: int = 100,
        observer_id: Optional[str] = None,
        on_close: Optional[Callable[[str], Any]] = None
    ):
        self.id = observer_id or uuid.uuid4().hex
        self.loop = loop
        self.closed = False
        self._on_close = on_close
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._heartbeat_task: Optional[asyncio.Task] = None
    
    def push(self, event: Event):
        """
        Deliver an event to this observer.
        
        Raises:
            ObserverDeliveryError: If the observer is closed, its loop is
                gone, or its queue is full
        """
        if self.closed:
            raise ObserverDeliveryError(f"Observer {self.id} is closed")
        
        if self._on_own_loop():
            self._enqueue(event)
            return
        
        try:
            self.loop.call_soon_threadsafe(self._enqueue_deferred, event)
        except RuntimeError as e:
            raise ObserverDeliveryError(f"Observer {self.id} loop unavailable: {e}") from e
    
    def _on_own_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False
    
    def _enqueue(self, event: Event):
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as e:
            raise ObserverDeliveryError(f"Observer {self.id} queue is full") from e
    
    def _enqueue_deferred(self, event: Event):
        if self.closed:
            return
        try:
            self._enqueue(event)
        except ObserverDeliveryError as e:
            # Cross-thread pushes cannot report back; the stream ends instead
            logger.warning(f"Dropping monitor {self.id}: {e}")
            self.close()
    
    def start_heartbeat(self, interval: float):
        """Start the repeating heartbeat. Must be called on the observer's loop."""
        if self._heartbeat_task is None and not self.closed:
            self._heartbeat_task = self.loop.create_task(self._heartbeat(interval))
    
    async def _heartbeat(self, interval: float):
        while not self.closed:
            await asyncio.sleep(interval)
            try:
                self.push(dict(HEARTBEAT_EVENT))
            except ObserverDeliveryError as e:
                logger.info(f"Heartbeat stopped for monitor {self.id}: {e}")
                self.close()
                return
    
    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()
    
    def close(self):
        """Stop the heartbeat and wake any reader. Idempotent."""
        if self.closed:
            return
        self.closed = True
        
        if self._on_close is not None:
            self._on_close(self.id)
        
        if self._on_own_loop():
            self._shutdown()
        else:
            try:
                self.loop.call_soon_threadsafe(self._shutdown)
            except RuntimeError:
                # Loop already closed, nothing left to wake
                pass
    
    def _shutdown(self):
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        
        # Make room for the close marker so a waiting reader returns
        while self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)
    
    def pending(self) -> List[Event]:
        """Drain and return queued events without waiting"""
        events = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                break
            events.append(item)
        return events
    
    async def events(self) -> AsyncIterator[Event]:
        """Yield events until the observer is closed"""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class BroadcastHub:
    """
    Registry of monitor observers.
    
    The registry is guarded by a lock and iterated over a copy, so
    subscribe/unsubscribe during a broadcast never disturbs delivery to
    the observers that were registered when it started.
    """
    
    def __init__(
        self,
        snapshot_provider: Callable[[], Dict[str, Any]],
        heartbeat_interval: float = 30.0,
        queue_size: int = 100
    ):
        """
        Args:
            snapshot_provider: Returns the body of the init event
            heartbeat_interval: Seconds between heartbeat events
            queue_size: Per-observer queue capacity
        """
        self.snapshot_provider = snapshot_provider
        self.heartbeat_interval = heartbeat_interval
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._observers: Dict[str, Observer] = {}
    
    def subscribe(self) -> Observer:
        """
        Register a new observer on the running event loop.
        
        The observer immediately receives the init snapshot and then a
        heartbeat every `heartbeat_interval` seconds until unsubscribed.
        """
        loop = asyncio.get_running_loop()
        observer = Observer(loop, queue_size=self.queue_size, on_close=self._discard)
        
        with self._lock:
            self._observers[observer.id] = observer
        
        init_event = {"type": "init"}
        init_event.update(self.snapshot_provider())
        observer.push(init_event)
        observer.start_heartbeat(self.heartbeat_interval)
        
        logger.info(f"Monitor connected: {observer.id} ({self.count()} connected)")
        return observer
    
    def unsubscribe(self, observer_id: str) -> bool:
        """
        Remove an observer. Safe to call repeatedly.
        
        Returns:
            True if the observer was registered
        """
        with self._lock:
            observer = self._observers.pop(observer_id, None)
        
        if observer is None:
            return False
        
        observer.close()
        logger.info(f"Monitor disconnected: {observer_id} ({self.count()} connected)")
        return True
    
    def _discard(self, observer_id: str):
        # Called by an observer that closed itself
        with self._lock:
            observer = self._observers.pop(observer_id, None)
        if observer is not None:
            logger.info(f"Monitor dropped: {observer_id} ({self.count()} connected)")
    
    def broadcast(self, event: Event) -> int:
        """
        Push an event to every registered observer.
        
        A failed push drops that observer; delivery to the rest continues.
        
        Returns:
            Number of observers the event was delivered to
        """
        with self._lock:
            observers = list(self._observers.values())
        
        delivered = 0
        for observer in observers:
            try:
                observer.push(dict(event))
                delivered += 1
            except ObserverDeliveryError as e:
                logger.warning(f"Monitor push failed, removing {observer.id}: {e}")
                self.unsubscribe(observer.id)
        
        return delivered
    
    def notify(self, notification: Dict[str, Any]) -> int:
        """
        Log a notification and broadcast it to all monitors.
        
        The notification's own type tag is carried as `event`.
        """
        log_admin_notification(notification)
        
        event = {"type": "notification"}
        for key, value in notification.items():
            if key == "type":
                event["event"] = value
            else:
                event[key] = value
        
        return self.broadcast(event)
    
    def count(self) -> int:
        return len(self._observers)
    
    def close(self):
        """Disconnect every observer"""
        with self._lock:
            observer_ids = list(self._observers)
        for observer_id in observer_ids:
            self.unsubscribe(observer_id)
