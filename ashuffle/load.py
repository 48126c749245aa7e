"""
Pool builders — fill a ShuffleChain from a song source.

Two sources are supported:

  MPDLoader   — every song in the MPD database
  FileLoader  — one URI per line from a file (or stdin), optionally checked
                against the database so rules and grouping can be applied

Both apply the exclusion ruleset and the group-by key the same way and hand
the chain one finished batch; nothing is picked from a half-loaded pool.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Sequence, TextIO

from .players.base import Player, Song
from .rule import Rule, accepted
from .shuffle import ShuffleChain

logger = logging.getLogger(__name__)


def group_songs(songs: Iterable[Song], ruleset: Sequence[Rule] = (),
                group_by: Sequence[str] = ()) -> Iterator[tuple[tuple, list[str]]]:
    """Yield (group-key, uris) pairs in first-seen order.

    Songs rejected by a rule are dropped.  Without a group-by key every song
    is its own group.  Songs that carry none of the group-by tags are kept as
    single-song groups rather than lumped together.
    """
    ruleset = list(ruleset)
    groups: dict[tuple, list[str]] = {}
    dropped = 0
    for song in songs:
        if not accepted(song, ruleset):
            dropped += 1
            continue
        if not group_by:
            yield (song.uri,), [song.uri]
            continue
        values = tuple(song.tag(tag) for tag in group_by)
        if all(v is None for v in values):
            key = (None, song.uri)
        else:
            key = tuple(v or "" for v in values)
        groups.setdefault(key, []).append(song.uri)
    if dropped:
        logger.debug("Excluded %d songs by rule", dropped)
    yield from groups.items()


class Loader(ABC):
    """Interface for anything that can populate a ShuffleChain."""

    @abstractmethod
    async def load(self, chain: ShuffleChain) -> None: ...


class MPDLoader(Loader):
    """Load the whole MPD database, filtered and grouped."""

    def __init__(self, player: Player, ruleset: Sequence[Rule] = (),
                 group_by: Sequence[str] = ()):
        self.player = player
        self.ruleset = list(ruleset)
        self.group_by = list(group_by)

    async def load(self, chain: ShuffleChain) -> None:
        # Only ask MPD for tags when something actually looks at them.
        need_metadata = bool(self.ruleset or self.group_by)
        songs = await self.player.list_all(metadata=need_metadata)
        for _key, uris in group_songs(songs, self.ruleset, self.group_by):
            chain.add(uris)
        logger.debug("Loaded %d songs from MPD into %d groups",
                     chain.len_uris(), chain.len())


def read_uris(stream: TextIO) -> list[str]:
    """One URI per line; blank lines and surrounding whitespace ignored."""
    return [line.strip() for line in stream if line.strip()]


class FileLoader(Loader):
    """Load URIs from a text stream.

    With ``check`` (the default) each URI is looked up in the database:
    unknown URIs are skipped and rules/grouping apply.  Without it every URI
    goes in as-is, one group each.
    """

    def __init__(self, player: Player, stream: TextIO, ruleset: Sequence[Rule] = (),
                 group_by: Sequence[str] = (), check: bool = True):
        self.player = player
        self.stream = stream
        self.ruleset = list(ruleset)
        self.group_by = list(group_by)
        self.check = check
        self._uris: list[str] | None = None

    def _read(self) -> list[str]:
        if self._uris is None:
            self._uris = read_uris(self.stream)
        return self._uris

    async def load(self, chain: ShuffleChain) -> None:
        uris = self._read()
        if not self.check:
            for uri in uris:
                chain.add(uri)
            return

        songs = []
        for uri in uris:
            song = await self.player.search(uri)
            if song is None:
                logger.debug("Skipping %s: not in the MPD database", uri)
                continue
            songs.append(song)
        if len(songs) != len(uris):
            logger.warning("%d of %d URIs from file not found in MPD",
                           len(uris) - len(songs), len(uris))
        for _key, group in group_songs(songs, self.ruleset, self.group_by):
            chain.add(group)
