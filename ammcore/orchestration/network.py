"""Network validity state machine gating every mutating operation."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from ammcore.logging import log
from ammcore.orchestration.collaborators import SessionLayer
from ammcore.orchestration.errors import NetworkSwitchFailed, WrongNetwork

T = TypeVar("T")


class NetworkState(str, Enum):
    UNKNOWN = "unknown"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class NetworkTransition:
    previous: NetworkState
    current: NetworkState
    chain_id: int | None
    source: str
    at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous": self.previous.value,
            "current": self.current.value,
            "chain_id": self.chain_id,
            "source": self.source,
            "at": self.at,
        }


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """A read-only result together with the network state it was produced under."""

    value: T
    network_state: NetworkState
    sequence: int | None = None
    stale: bool = False


class NetworkGuard:
    """Tracks whether the session is on the expected chain.

    The state changes only on explicit check events: the initial session check,
    a chain-change notification, or the re-check after a requested switch.
    Mutating flows call :meth:`require_correct` before any external call.
    """

    def __init__(self, expected_chain_id: int, history_limit: int = 50) -> None:
        self.expected_chain_id = int(expected_chain_id)
        self._state = NetworkState.UNKNOWN
        self._chain_id: int | None = None
        self._history: deque[NetworkTransition] = deque(maxlen=max(1, int(history_limit)))

    @property
    def state(self) -> NetworkState:
        return self._state

    @property
    def chain_id(self) -> int | None:
        return self._chain_id

    @property
    def history(self) -> list[NetworkTransition]:
        return list(self._history)

    def check(self, chain_id: int | None, source: str = "check") -> NetworkState:
        """Record an observed chain id and move to the matching state."""
        if chain_id is None:
            new_state = NetworkState.UNKNOWN
        elif int(chain_id) == self.expected_chain_id:
            new_state = NetworkState.CORRECT
        else:
            new_state = NetworkState.INCORRECT
        self._chain_id = int(chain_id) if chain_id is not None else None
        self._transition(new_state, source)
        return new_state

    def on_chain_changed(self, chain_id: int) -> None:
        """Session-layer notification callback."""
        self.check(chain_id, source="chain_changed")

    def attach(self, session: SessionLayer) -> None:
        session.on_network_changed(self.on_chain_changed)
        log.debug(f"NetworkGuard subscribed to session chain changes expected_chain_id={self.expected_chain_id}")

    async def initial_check(self, session: SessionLayer) -> NetworkState:
        try:
            chain_id = await session.current_network_id()
        except Exception as exc:
            log.warning(f"Initial network check failed; state stays unknown: {exc}")
            self._transition(NetworkState.UNKNOWN, "initial_check_failed")
            return self._state
        return self.check(chain_id, source="initial_check")

    async def request_switch(self, session: SessionLayer) -> NetworkState:
        """Ask the session to move to the expected chain, then re-check."""
        if self._state is NetworkState.CORRECT:
            return self._state
        log.info(f"Requesting network switch target_chain_id={self.expected_chain_id} current={self._chain_id}")
        try:
            await session.request_network_switch(self.expected_chain_id)
            chain_id = await session.current_network_id()
        except Exception as exc:
            raise NetworkSwitchFailed(
                f"Could not switch to chain {self.expected_chain_id}",
                params={"target_chain_id": self.expected_chain_id, "current_chain_id": self._chain_id},
                cause=exc,
            ) from exc
        state = self.check(chain_id, source="switch")
        if state is not NetworkState.CORRECT:
            raise NetworkSwitchFailed(
                f"Session reports chain {chain_id} after switching to {self.expected_chain_id}",
                params={"target_chain_id": self.expected_chain_id, "current_chain_id": chain_id},
            )
        return state

    def require_correct(self, operation: str, context: dict[str, Any] | None = None) -> None:
        """Raise WrongNetwork unless on the expected chain; ``context`` is merged into its params."""
        if self._state is not NetworkState.CORRECT:
            log.warning(
                f"Blocked {operation}: network state={self._state.value} "
                f"chain_id={self._chain_id} expected={self.expected_chain_id}"
            )
            raise WrongNetwork(
                f"{operation} requires chain {self.expected_chain_id}; network state is {self._state.value}",
                params={
                    "operation": operation,
                    "state": self._state,
                    "chain_id": self._chain_id,
                    "expected_chain_id": self.expected_chain_id,
                    **(context or {}),
                },
            )

    def _transition(self, new_state: NetworkState, source: str) -> None:
        previous = self._state
        self._state = new_state
        self._history.append(
            NetworkTransition(
                previous=previous,
                current=new_state,
                chain_id=self._chain_id,
                source=source,
                at=datetime.now(timezone.utc).isoformat(),
            )
        )
        if previous is not new_state:
            log.info(
                f"Network state {previous.value} -> {new_state.value} "
                f"chain_id={self._chain_id} source={source}"
            )

    def describe(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "chain_id": self._chain_id,
            "expected_chain_id": self.expected_chain_id,
            "history": [item.to_dict() for item in self._history],
        }
