"""Step handlers notified after every accepted step.

The propagator calls ``init(state, t_end)`` once before the first step,
``handle(state, is_last)`` synchronously after each accepted step and
``close()`` when propagation ends for any reason. Handlers never see
rejected trial steps.

Handlers:
- EphemerisRecorder: appends each state to an :class:`Ephemeris`
- CallbackStepHandler: forwards to a plain callable
- DecimatingStepHandler: forwards every n-th step (and the last one)
- AsyncStepHandler: hands a slow handler off to a worker thread
- ProgressStepHandler: tqdm progress bar over simulated time
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol, runtime_checkable

from beartype import beartype
from tqdm import tqdm

from satsim.dynamics.state import SatelliteState
from satsim.propagation.ephemeris import Ephemeris

logger = logging.getLogger(__name__)


@runtime_checkable
class StepHandler(Protocol):
    """Observer of accepted steps."""

    def init(self, state: SatelliteState, t_end: float) -> None:
        ...

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        ...

    def close(self) -> None:
        ...


@beartype
class EphemerisRecorder:
    """Record the initial state and every accepted state."""

    def __init__(self, ephemeris: Ephemeris | None = None) -> None:
        self.ephemeris = Ephemeris() if ephemeris is None else ephemeris

    def init(self, state: SatelliteState, t_end: float) -> None:
        if self.ephemeris.is_empty or self.ephemeris.last.time < state.time:
            self.ephemeris.append(state)

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        self.ephemeris.append(state)

    def close(self) -> None:
        pass


@beartype
class CallbackStepHandler:
    """Wrap ``callback(state, is_last)`` as a step handler."""

    def __init__(self, callback: Callable[[SatelliteState, bool], None]) -> None:
        self.callback = callback

    def init(self, state: SatelliteState, t_end: float) -> None:
        pass

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        self.callback(state, is_last)

    def close(self) -> None:
        pass


@beartype
class DecimatingStepHandler:
    """Forward only every ``every``-th accepted step, plus the last one."""

    def __init__(self, handler: StepHandler, every: int) -> None:
        if every < 1:
            raise ValueError(f"Decimation factor must be >= 1, got {every}")
        self.handler = handler
        self.every = every
        self._count = 0

    def init(self, state: SatelliteState, t_end: float) -> None:
        self._count = 0
        self.handler.init(state, t_end)

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        self._count += 1
        if is_last or self._count % self.every == 0:
            self.handler.handle(state, is_last)

    def close(self) -> None:
        self.handler.close()


@beartype
class AsyncStepHandler:
    """Run a slow handler on a single worker thread.

    States are submitted in order to a one-thread pool, so the wrapped
    handler sees them in step order. The states passed on are read-only
    snapshots. ``close()`` drains the queue and re-raises the first error
    the wrapped handler produced.
    """

    def __init__(self, handler: StepHandler) -> None:
        self.handler = handler
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future] = []

    def _submit(self, fn: Callable, *args) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="satsim-step")
        self._futures.append(self._executor.submit(fn, *args))

    def init(self, state: SatelliteState, t_end: float) -> None:
        self._submit(self.handler.init, state.frozen(), t_end)

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        self._submit(self.handler.handle, state.frozen(), is_last)
        self._futures = [f for f in self._futures if not f.done() or f.exception() is not None]

    def close(self) -> None:
        """Wait for every submitted state, then close the wrapped handler."""
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        self._executor = None
        futures, self._futures = self._futures, []
        errors = [f.exception() for f in futures if f.exception() is not None]
        try:
            self.handler.close()
        finally:
            if errors:
                raise errors[0]


@beartype
class ProgressStepHandler:
    """Progress bar over simulated time."""

    def __init__(self, description: str = "Propagating") -> None:
        self.description = description
        self._bar: tqdm | None = None
        self._last_time = 0.0

    def init(self, state: SatelliteState, t_end: float) -> None:
        self._last_time = state.time
        self._bar = tqdm(total=t_end - state.time, desc=self.description, unit="s")

    def handle(self, state: SatelliteState, is_last: bool) -> None:
        if self._bar is None:
            return
        self._bar.update(state.time - self._last_time)
        self._last_time = state.time

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
