# remindd/reminders/timers.py
import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from remindd.core.schemas import composite_key

log = logging.getLogger(__name__)

Clock = Callable[[], int]
FireCallback = Callable[[], Awaitable[object]]
Sleep = Callable[[float], Awaitable[object]]


def system_clock() -> int:
    return int(time.time())


@dataclass(eq=False)
class _Timer:
    user_id: int
    key: str
    cooldown_end: int
    task: asyncio.Task | None = None
    fired: bool = field(default=False)

    def cancel(self) -> None:
        # A fired timer is running its callback; that call always runs to completion.
        if not self.fired and self.task and not self.task.done():
            self.task.cancel()


class TimerRegistry:
    """
    One deferred callback per (user, resource, network), owned by the process.

    Scheduling a key that already has a pending timer cancels the old one first,
    so the most recent schedule always wins. The registry is pure bookkeeping:
    it can be dropped and rebuilt from the record store at any time.
    """

    def __init__(self, clock: Clock = system_clock, sleep: Sleep = asyncio.sleep):
        self.clock = clock
        self._sleep = sleep
        self._timers: dict[int, dict[str, _Timer]] = {}  # user_id -> {composite key -> timer}
        self._detached: set[asyncio.Task] = set()
        self._lock = threading.Lock()

    def schedule(
        self,
        user_id: int,
        resource_key: str,
        network: str,
        cooldown_end: int,
        on_fire: FireCallback,
    ) -> None:
        key = composite_key(resource_key, network)
        delay = cooldown_end - self.clock()

        if delay <= 0:
            self._cancel_key(user_id, key)
            log.info("Cooldown already ended for user %s (%s), firing now.", user_id, key)
            self.spawn(on_fire(), name=f"fire:{user_id}:{key}")
            return

        timer = _Timer(user_id=user_id, key=key, cooldown_end=cooldown_end)
        with self._lock:
            existing = self._timers.get(user_id, {}).get(key)
            if existing:
                existing.cancel()
            timer.task = asyncio.get_running_loop().create_task(
                self._run(timer, delay, on_fire), name=f"timer:{user_id}:{key}"
            )
            self._timers.setdefault(user_id, {})[key] = timer

        log.info("Scheduled notification for user %s (%s) in %ds.", user_id, key, delay)

    async def _run(self, timer: _Timer, delay: int, on_fire: FireCallback) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            log.debug("Timer for user %s (%s) cancelled.", timer.user_id, timer.key)
            raise

        timer.fired = True
        try:
            await on_fire()
        except Exception:
            log.error(
                "Notification callback failed for user %s (%s)",
                timer.user_id,
                timer.key,
                exc_info=True,
            )
        finally:
            self._discard(timer)

    def _discard(self, timer: _Timer) -> None:
        with self._lock:
            user_timers = self._timers.get(timer.user_id)
            # only remove the entry if a newer schedule has not replaced it
            if user_timers and user_timers.get(timer.key) is timer:
                del user_timers[timer.key]
                if not user_timers:
                    del self._timers[timer.user_id]

    def _cancel_key(self, user_id: int, key: str) -> None:
        with self._lock:
            user_timers = self._timers.get(user_id)
            timer = user_timers.pop(key, None) if user_timers else None
            if timer:
                timer.cancel()
            if user_timers is not None and not user_timers:
                del self._timers[user_id]

    def cancel_all(self, user_id: int) -> None:
        with self._lock:
            user_timers = self._timers.pop(user_id, {})
            for timer in user_timers.values():
                timer.cancel()
        if user_timers:
            log.info("Cancelled %d timer(s) for user %s.", len(user_timers), user_id)

    def has_active(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._timers.get(user_id))

    def is_scheduled(self, user_id: int, resource_key: str, network: str) -> bool:
        with self._lock:
            return composite_key(resource_key, network) in self._timers.get(user_id, {})

    def active_count(self) -> int:
        with self._lock:
            return sum(len(t) for t in self._timers.values())

    def spawn(self, coro: Awaitable, name: str | None = None) -> asyncio.Task:
        """
        Runs a coroutine detached from the caller.
        Failures are logged here; nothing propagates back to whoever spawned it.
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._detached.add(task)
        task.add_done_callback(self._on_detached_done)
        return task

    def _on_detached_done(self, task: asyncio.Task) -> None:
        self._detached.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Detached task %s failed", task.get_name(), exc_info=exc)

    async def wait_idle(self) -> None:
        """Waits until every detached task has finished, including ones they spawn."""
        while self._detached:
            await asyncio.gather(*list(self._detached), return_exceptions=True)

    async def shutdown(self) -> None:
        with self._lock:
            timers = [t for user in self._timers.values() for t in user.values()]
            self._timers.clear()
        for timer in timers:
            if timer.task and not timer.task.done():
                timer.task.cancel()
        for task in list(self._detached):
            task.cancel()
        pending = [t.task for t in timers if t.task] + list(self._detached)
        await asyncio.gather(*pending, return_exceptions=True)
        log.info("Timer registry shut down (%d timer(s) dropped).", len(timers))
