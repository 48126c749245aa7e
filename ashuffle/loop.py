"""
Queue controller and idle loop.

``try_first`` starts playback if the player is idle, ``try_enqueue`` keeps
``queue_buffer`` songs queued after the current one, and ``run_loop`` waits
on player notifications and calls them:

    database changed  → exit (exit-on-db-update) or rebuild the pool
    queue / player    → optionally wait out suspend-timeout, then top up

The loop never calls sys.exit(); it returns a LoopExit and lets the caller
decide what the process does.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .args import Options
from .load import Loader, MPDLoader
from .players.base import ALL_EVENTS, IdleEvent, Player
from .shuffle import ShuffleChain

log = logging.getLogger(__name__)


class LoopExit(enum.Enum):
    STOPPED = "stopped"                    # the `until` predicate said so
    DATABASE_UPDATED = "database_updated"  # exit-on-db-update fired


class Mode(enum.Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"


@dataclass
class LoopState:
    """What the loop is doing right now; read by the status page."""
    mode: Mode = Mode.RUNNING
    enqueued: int = 0
    reloads: int = 0


def describe_chain(chain: ShuffleChain) -> str:
    if chain.len() == 0:
        return "Song pool is empty."
    # Grouping is active whenever a group holds more than one song.
    if chain.len() != chain.len_uris():
        return f"Picking from {chain.len()} groups ({chain.len_uris()} songs)."
    return f"Picking random songs out of a pool of {chain.len()}."


def log_chain_length(chain: ShuffleChain):
    log.info(describe_chain(chain))


async def try_first(player: Player, chain: ShuffleChain) -> int:
    """Start playing a fresh pick if the player isn't already going."""
    status = await player.status()
    if status.playing:
        return 0

    picked = chain.pick()
    await player.add_many(picked)
    # The old queue length is the zero-based position of what we just added.
    await player.play_at(status.queue_length)
    return len(picked)


async def try_enqueue(player: Player, chain: ShuffleChain, options: Options) -> int:
    """Top the queue up to ``options.queue_buffer``; return songs added."""
    status = await player.status()
    queue_buffer = options.queue_buffer

    # We're "past" the last song if there is no current song position.
    past_last = status.song_position is None
    queue_empty = status.queue_length == 0

    remaining = 0
    if not past_last:
        remaining = status.queue_length - (status.song_position + 1)

    should_add = past_last or queue_empty or remaining < queue_buffer
    if not should_add:
        return 0

    added = 0
    if queue_buffer > 0:
        needed = queue_buffer - remaining
        # Not "on" a song: the one about to play needs a slot too.
        if past_last or queue_empty:
            needed += 1
        # Whole groups only, so a multi-song group may overshoot the target.
        while needed > 0:
            picked = chain.pick()
            needed -= len(picked)
            await player.add_many(picked)
            added += len(picked)
    else:
        picked = chain.pick()
        await player.add_many(picked)
        added = len(picked)

    if past_last or queue_empty:
        # status predates the additions, so its queue length is the position
        # of the first song we just added.
        await player.play_at(status.queue_length)
        if status.single:
            await player.pause()

    log.debug("Enqueued %d songs (remaining was %d, buffer %d)",
              added, remaining, queue_buffer)
    return added


def reloader(player: Player, options: Options) -> Loader | None:
    """Loader used to rebuild the pool after a database update.

    A pool read from --file can't be rebuilt; the user is stuck with the
    URIs parsed the first time.
    """
    if options.file_in is not None:
        return None
    return MPDLoader(player, options.ruleset, options.group_by)


async def _reload(player: Player, chain: ShuffleChain, options: Options,
                  state: LoopState):
    loader = reloader(player, options)
    if loader is None:
        return
    # Build the new pool aside so readers never see a half-loaded chain.
    fresh = ShuffleChain(chain.window_size)
    await loader.load(fresh)
    chain.clear()
    for i in range(fresh.len()):
        chain.add(fresh.group(i))
    state.reloads += 1
    log_chain_length(chain)
    if chain.len() == 0:
        log.warning("Pool is empty after database update, not enqueuing until it refills")


async def run_loop(player: Player, chain: ShuffleChain, options: Options, *,
                   until: Callable[[], bool] | None = None,
                   sleep: Callable[[float], Awaitable] = asyncio.sleep,
                   state: LoopState | None = None) -> LoopExit:
    """Keep adding songs as the queue runs out.

    ``until`` and ``sleep`` are test hooks: the loop runs while ``until()``
    is true (forever when None), and ``sleep`` replaces the suspend wait.
    """
    if state is None:
        state = LoopState()
    tweak = options.tweak

    if tweak.play_on_startup:
        state.enqueued += await try_first(player, chain)
        state.enqueued += await try_enqueue(player, chain, options)

    while until is None or until():
        # Wait until the player state changes.
        events = await player.idle(ALL_EVENTS)

        if IdleEvent.DATABASE in events and tweak.exit_on_db_update:
            log.info("Database updated, exiting.")
            return LoopExit.DATABASE_UPDATED

        # Only rebuild the pool if it was originally built from MPD.
        if IdleEvent.DATABASE in events and options.file_in is None:
            await _reload(player, chain, options, state)
        elif IdleEvent.QUEUE in events or IdleEvent.PLAYER in events:
            if tweak.suspend_timeout > 0:
                status = await player.status()
                if status.queue_length == 0:
                    await sleep(tweak.suspend_timeout)
                    status = await player.status()
                    if status.queue_length == 0:
                        if state.mode is not Mode.SUSPENDED:
                            log.info("Queue still empty after %.1fs, suspending",
                                     tweak.suspend_timeout)
                        state.mode = Mode.SUSPENDED
                        continue
            if state.mode is Mode.SUSPENDED:
                log.info("Queue has songs again, resuming")
            state.mode = Mode.RUNNING
            if chain.len() == 0:
                continue
            state.enqueued += await try_enqueue(player, chain, options)

    return LoopExit.STOPPED
