"""
Abstract player interface for ashuffle.

The queue controller only talks to a player through this surface: a status
snapshot, a handful of commands, and one blocking ``idle()`` wait.  The MPD
implementation lives in ``players/mpd.py``; tests use a fake.

Subclass contract:

    class MyPlayer(Player):
        async def status(self) -> Status: ...
        async def add(self, uri: str) -> None: ...
        async def play_at(self, position: int) -> None: ...
        async def pause(self) -> None: ...
        async def idle(self, events) -> set[IdleEvent]: ...
        async def list_all(self, metadata=True) -> list[Song]: ...
        async def search(self, uri: str) -> Song | None: ...

Optional overrides:
    add_many(uris)  — default adds one URI at a time
    close()         — release the connection
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable


class IdleEvent(enum.Enum):
    """Player notifications the control loop waits on."""
    DATABASE = "database"
    QUEUE = "playlist"    # MPD reports queue edits on the "playlist" subsystem
    PLAYER = "player"


ALL_EVENTS = frozenset(IdleEvent)


@dataclass(frozen=True)
class Status:
    """Snapshot of the player state, taken once per loop iteration."""
    queue_length: int = 0
    song_position: int | None = None
    single: bool = False
    playing: bool = False


@dataclass
class Song:
    """A song in the player's database: its URI plus lower-cased tags."""
    uri: str
    tags: dict[str, str] = field(default_factory=dict)

    def tag(self, name: str) -> str | None:
        return self.tags.get(name.lower())


class Player(ABC):
    """Interface every player backend must implement."""

    @abstractmethod
    async def status(self) -> Status: ...

    @abstractmethod
    async def add(self, uri: str) -> None: ...

    async def add_many(self, uris: Iterable[str]) -> None:
        for uri in uris:
            await self.add(uri)

    @abstractmethod
    async def play_at(self, position: int) -> None: ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def idle(self, events: Iterable[IdleEvent] = ALL_EVENTS) -> set[IdleEvent]:
        """Block until one of *events* fires; return the ones that did."""

    @abstractmethod
    async def list_all(self, metadata: bool = True) -> list[Song]: ...

    @abstractmethod
    async def search(self, uri: str) -> Song | None: ...

    async def close(self) -> None:
        pass  # no-op by default
