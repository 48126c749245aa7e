"""
ashuffle MPD player (python-mpd2 asyncio client)

Talks to a Music Player Daemon over its text protocol.  Besides the Player
commands this module owns the connection handshake:

  1. resolve the address   — --host / MPD_HOST / config / localhost,
                             --port / MPD_PORT / config / 6600
  2. dial                  — 25 s timeout, ConnectError on failure
  3. authorize             — apply a password from "password@host" if any,
                             then make sure add/status/play/pause/idle are
                             allowed; prompt for a password when they aren't

MPD's idle command maps directly onto Player.idle(): one long-lived
``client.idle()`` generator is kept around so notifications that arrive
between two waits are queued instead of lost.
"""

import asyncio
import getpass as _getpass
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable

import mpd
from mpd.asyncio import MPDClient

from ..lib.config import cfg
from .base import ALL_EVENTS, IdleEvent, Player, Song, Status

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600
DIAL_TIMEOUT = 25.0  # seconds

# These MPD commands are required for ashuffle to run
REQUIRED_COMMANDS = ("add", "status", "play", "pause", "idle")

# Raised by a live connection when MPD goes away or refuses a command
PLAYER_ERRORS = (mpd.MPDError, OSError)


class ConnectError(Exception):
    """Could not connect to, or get enough permissions on, the MPD server."""


@dataclass
class MPDHost:
    """An MPD host string, optionally carrying a password ("secret@host")."""
    host: str
    password: str | None = None

    @classmethod
    def parse(cls, raw: str) -> "MPDHost":
        password, sep, host = raw.partition("@")
        if not sep:
            return cls(host=raw)
        return cls(host=host, password=password)


@dataclass
class Authorization:
    authorized: bool = False
    missing: list[str] = field(default_factory=list)


def resolve_address(host: str | None = None, port: int = 0) -> tuple[MPDHost, int]:
    """Pick the host/port to dial: flag, then environment, then config."""
    raw_host = host or os.environ.get("MPD_HOST") or cfg("mpd", "host", default=DEFAULT_HOST)
    if not port:
        env_port = os.environ.get("MPD_PORT")
        if env_port:
            try:
                port = int(env_port)
            except ValueError:
                logger.warning("Ignoring invalid MPD_PORT=%r", env_port)
        if not port:
            port = int(cfg("mpd", "port", default=DEFAULT_PORT))
    return MPDHost.parse(raw_host), port


def _tag_value(value) -> str:
    # python-mpd2 returns a list when a tag appears more than once
    if isinstance(value, list):
        return ", ".join(value)
    return str(value)


def _to_song(entry: dict) -> Song:
    tags = {k.lower(): _tag_value(v) for k, v in entry.items() if k != "file"}
    return Song(uri=entry["file"], tags=tags)


class MPDPlayer(Player):
    """Player backed by a connected python-mpd2 asyncio client."""

    def __init__(self, client: MPDClient):
        self._client = client
        self._idle_iter = None
        self._idle_events: frozenset[IdleEvent] = frozenset()

    # ── Player commands ──

    async def status(self) -> Status:
        raw = await self._client.status()
        song = raw.get("song")
        return Status(
            queue_length=int(raw.get("playlistlength", 0)),
            song_position=int(song) if song is not None else None,
            single=raw.get("single", "0") != "0",
            playing=raw.get("state") == "play",
        )

    async def add(self, uri: str) -> None:
        logger.debug("add %s", uri)
        await self._client.add(uri)

    async def play_at(self, position: int) -> None:
        logger.debug("play %d", position)
        await self._client.play(position)

    async def pause(self) -> None:
        logger.debug("pause")
        await self._client.pause(1)

    async def idle(self, events: Iterable[IdleEvent] = ALL_EVENTS) -> set[IdleEvent]:
        wanted = frozenset(events)
        if self._idle_iter is None or wanted != self._idle_events:
            if self._idle_iter is not None:
                await self._idle_iter.aclose()
            self._idle_iter = self._client.idle([e.value for e in wanted])
            self._idle_events = wanted
        changed = await anext(self._idle_iter)
        fired = {e for e in wanted if e.value in changed}
        logger.debug("idle -> %s", sorted(e.name for e in fired))
        return fired

    async def list_all(self, metadata: bool = True) -> list[Song]:
        if metadata:
            entries = await self._client.listallinfo()
        else:
            entries = await self._client.listall()
        return [_to_song(e) for e in entries if "file" in e]

    async def search(self, uri: str) -> Song | None:
        found = await self._client.find("file", uri)
        for entry in found:
            if entry.get("file") == uri:
                return _to_song(entry)
        return None

    async def close(self) -> None:
        if self._idle_iter is not None:
            await self._idle_iter.aclose()
            self._idle_iter = None
        self._client.disconnect()

    # ── Authorization ──

    async def apply_password(self, password: str) -> bool:
        """Send a password; True if MPD accepted it."""
        try:
            await self._client.password(password)
        except mpd.CommandError as e:
            logger.debug("Password rejected: %s", e)
            return False
        return True

    async def check_commands(self, required: Iterable[str] = REQUIRED_COMMANDS) -> Authorization:
        allowed = set(await self._client.commands())
        missing = [cmd for cmd in required if cmd not in allowed]
        return Authorization(authorized=not missing, missing=missing)


async def _prompt_password(player: MPDPlayer, getpass: Callable[[], str]):
    """Keep asking until MPD accepts a password."""
    loop = asyncio.get_running_loop()
    while True:
        password = await loop.run_in_executor(None, getpass)
        if await player.apply_password(password):
            return
        logger.error("incorrect password.")


async def connect(host: str | None = None, port: int = 0, *,
                  getpass: Callable[[], str] = _getpass.getpass,
                  client_factory: Callable[[], MPDClient] = MPDClient,
                  timeout: float = DIAL_TIMEOUT) -> MPDPlayer:
    """Dial MPD and make sure the connection may run every required command."""
    mpd_host, port = resolve_address(host, port)
    client = client_factory()
    try:
        await asyncio.wait_for(client.connect(mpd_host.host, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError, mpd.ConnectionError) as e:
        raise ConnectError(f"Failed to connect to mpd: {str(e) or type(e).__name__}") from e
    logger.info("Connected to MPD at %s:%d", mpd_host.host, port)

    player = MPDPlayer(client)

    # A supplied password is applied no matter what; whether it was accepted
    # only matters through the command check below.
    if mpd_host.password:
        await player.apply_password(mpd_host.password)

    auth = await player.check_commands()
    if not mpd_host.password and not auth.authorized:
        await _prompt_password(player, getpass)
        auth = await player.check_commands()

    if not auth.authorized:
        await player.close()
        raise ConnectError(
            "password applied, but required command still not allowed. "
            "Missing MPD Commands: " + ", ".join(auth.missing))
    return player
