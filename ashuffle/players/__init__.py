"""
Players — backends that ashuffle can keep fed.

A player owns the connection to the thing actually playing music.  The
queue controller reads a ``Status`` snapshot, waits on ``idle()`` for
changes, and issues add / play_at / pause commands; it never imports a
client library directly.

Current players:
  mpd.py   — Music Player Daemon via python-mpd2's asyncio client
"""

from .base import ALL_EVENTS, IdleEvent, Player, Song, Status

__all__ = [
    "ALL_EVENTS",
    "IdleEvent",
    "Player",
    "Song",
    "Status",
]
