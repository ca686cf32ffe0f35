"""Serialises key handling against layout mutations."""

import logging
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class InputQueue:
    """Runs input handlers immediately, or defers them while the UI is being rebuilt.

    Handlers submitted inside a `mutating()` block are replayed in submission
    order once the outermost block exits.
    """

    def __init__(self):
        self._pending: deque[Callable[[], None]] = deque()
        self._depth = 0

    @property
    def mutating_now(self) -> bool:
        return self._depth > 0

    def __len__(self) -> int:
        return len(self._pending)

    @contextmanager
    def mutating(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                self.drain()

    def submit(self, handler: Callable[[], None]) -> None:
        if self._depth > 0:
            self._pending.append(handler)
            return
        self._run(handler)

    def drain(self) -> None:
        while self._pending and self._depth == 0:
            self._run(self._pending.popleft())

    def _run(self, handler: Callable[[], None]) -> None:
        try:
            handler()
        except Exception:
            logger.exception("Input handler failed")
