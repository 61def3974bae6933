"""Instance base - owned state, outbox, clock, and the rejection policy."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import structlog
from pydantic import BaseModel

from predcascade.errors import CascadeError
from predcascade.models.messages import Envelope

log = structlog.get_logger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


class Instance(ABC):
    """One independently executed unit. Handlers run to completion, one at a time.

    In lenient mode a rejected operation is logged and ignored (state unchanged).
    In strict mode the typed error is raised instead; state is still unchanged.
    """

    kind: str = ""
    state_model: type[BaseModel] = BaseModel

    def __init__(self, instance_id: str, clock: Clock | None = None, strict: bool = False) -> None:
        self.instance_id = instance_id
        self.clock: Clock = clock or now_ms
        self.strict = strict
        self._outbox: list[Envelope] = []

    @property
    @abstractmethod
    def state(self) -> BaseModel:
        """Owned state, persisted by the host after each step."""
        ...

    @abstractmethod
    def execute_operation(self, operation: Any, caller: str) -> None:
        """Apply one operation submitted by caller."""
        ...

    @abstractmethod
    def handle_message(self, message: Any, sender: str) -> None:
        """Apply one inbound message."""
        ...

    def restore(self, state_json: str) -> None:
        """Replace owned state with a previously committed snapshot."""
        self._state = self.state_model.model_validate_json(state_json)

    def emit(self, receiver: str, message: Any) -> None:
        self._outbox.append(Envelope(sender=self.instance_id, receiver=receiver, message=message))

    def drain_outbox(self) -> list[Envelope]:
        out, self._outbox = self._outbox, []
        return out

    def _reject(self, error: CascadeError) -> None:
        log.warning(
            "operation_rejected",
            instance=self.instance_id,
            code=error.code,
            reason=error.message,
            **error.context,
        )
        if self.strict:
            raise error
