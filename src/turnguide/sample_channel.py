# sample_channel.py
# Single-consumer asyncio task that owns a NavigationStateMachine.
# Provider callbacks only enqueue; the task processes samples one at a time
# in arrival order.
#
# Overflow policy: drop-oldest / keep-latest. When sample_queue_size items are
# pending, the oldest pending *sample* is discarded to make room. Provider
# errors and the close marker are never discarded; if nothing but those is
# pending, the incoming sample is dropped instead.

import asyncio
import logging
from typing import Any, List, Optional, Tuple

from .models import Coord, NavigationSession, TransportMode
from .nav_config import NavConfig
from .providers import LocationProvider
from .route_model import RouteModel
from .state_machine import NavigationStateMachine

logger = logging.getLogger(__name__)

Item = Tuple[str, int, Any]

_CLOSE: Item = ("close", 0, None)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class NavigationTask:
    """
    Message-passing front end for NavigationStateMachine.

    Usage:
        task = NavigationTask(provider, config)
        task.machine.add_listener(on_event)
        runner = asyncio.create_task(task.run())
        task.start(route, TransportMode.WALKING)
        ...
        task.stop()
        task.close()
        await runner

    start()/stop() must be called from the event loop thread; provider
    callbacks may come from any thread. Started outside a running loop,
    callbacks must stay on the starting thread until run() is awaited.
    """

    def __init__(self, location_provider: LocationProvider, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self.machine = NavigationStateMachine(location_provider, self.config, deliver=self._deliver)
        self.dropped = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(
        self,
        route: RouteModel,
        mode: TransportMode,
        destination: Optional[Coord] = None,
    ) -> NavigationSession:
        # Bind to the calling loop so foreign-thread callbacks are marshalled
        # even before run() has started.
        loop = _running_loop()
        if loop is not None:
            self._loop = loop
        return self.machine.start(route, mode, destination)

    def stop(self) -> None:
        # Generation bump makes anything still queued stale
        self.machine.stop()

    def close(self) -> None:
        """Ask run() to finish once everything queued before this call is processed."""
        self._deliver(*_CLOSE)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Process queued items until close() is called."""
        self._loop = asyncio.get_running_loop()
        try:
            while True:
                kind, generation, payload = await self._queue.get()
                try:
                    if kind == "close":
                        break
                    if kind == "sample":
                        self.machine.handle_sample(payload, generation)
                    elif kind == "error":
                        self.machine.handle_error(payload, generation)
                finally:
                    self._queue.task_done()
        finally:
            self._loop = None

    async def join(self) -> None:
        """Wait until every queued item has been processed."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def _deliver(self, kind: str, generation: int, payload: Any) -> None:
        item = (kind, generation, payload)
        loop = self._loop
        if loop is None or _running_loop() is loop:
            self._enqueue(item)
        else:
            loop.call_soon_threadsafe(self._enqueue, item)

    def _enqueue(self, item: Item) -> None:
        if item[0] != "sample" or self._queue.qsize() < self.config.sample_queue_size:
            self._queue.put_nowait(item)
            return

        pending: List[Item] = []
        while not self._queue.empty():
            pending.append(self._queue.get_nowait())
            self._queue.task_done()

        victim = next((i for i, p in enumerate(pending) if p[0] == "sample"), None)
        if victim is None:
            logger.debug("Sample queue holds only control items; dropping incoming sample.")
        else:
            del pending[victim]
            pending.append(item)
        self.dropped += 1

        for p in pending:
            self._queue.put_nowait(p)
