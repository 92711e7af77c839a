"""
In-memory registry of the players' state machines.

Owned by the application, so it outlives the per-request database sessions. Bounded in two ways:
* a player untouched for `session_idle_timeout_seconds` (measured with the injected clock) is dropped
* beyond `max_active_players`, the least recently used player is dropped

A dropped player starts over from the stored rating on the next game.
"""

import logging
import random
import threading
from collections import OrderedDict
from typing import Optional

from src.core.config import Settings
from src.engine.generator import PositionGenerator, RandomSource
from src.engine.rating import RatingState
from src.engine.session import Clock, SessionStateMachine, wall_clock

log = logging.getLogger(__name__)


class PlayerSessions:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Clock = wall_clock,
        random_source: RandomSource = random.random,
    ) -> None:
        self.settings = settings or Settings()
        self.clock = clock
        self.random_source = random_source
        # Serializes the calls into the state machines (they expect a single writer)
        self.lock = threading.RLock()
        # Least recently used first
        self._machines: OrderedDict[str, SessionStateMachine] = OrderedDict()
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, player_name: object) -> bool:
        return player_name in self._machines

    def get(self, player_name: str) -> Optional[SessionStateMachine]:
        self.evict_idle()
        machine = self._machines.get(player_name)
        if machine is not None:
            self._touch(player_name)
        return machine

    def add(self, player_name: str, rating_state: RatingState) -> SessionStateMachine:
        machine = SessionStateMachine(
            rating_state=rating_state,
            generator=PositionGenerator(
                random_source=self.random_source,
                max_attempts=self.settings.max_generation_attempts,
            ),
            clock=self.clock,
            settings=self.settings,
        )
        self._machines[player_name] = machine
        self._touch(player_name)

        while len(self._machines) > self.settings.max_active_players:
            dropped, _ = self._machines.popitem(last=False)
            del self._last_seen[dropped]
            log.info("Too many active players, dropped session of %s", dropped)
        return machine

    def drop(self, player_name: str) -> None:
        self._machines.pop(player_name, None)
        self._last_seen.pop(player_name, None)

    def evict_idle(self) -> list[str]:
        """Drop every player whose last call is older than the idle timeout. Returns their names."""
        cutoff = self.clock() - self.settings.session_idle_timeout_seconds * 1000
        evicted: list[str] = []
        while self._machines:
            oldest = next(iter(self._machines))
            if self._last_seen[oldest] > cutoff:
                break
            self.drop(oldest)
            evicted.append(oldest)
        if evicted:
            log.info("Dropped %d idle session(s)", len(evicted))
        return evicted

    def _touch(self, player_name: str) -> None:
        self._machines.move_to_end(player_name)
        self._last_seen[player_name] = self.clock()
