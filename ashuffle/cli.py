"""
ashuffle entry point.

Connects to MPD, builds the song pool, then either does a one-shot job
(--only N, print-all-songs) or runs the idle loop until MPD's database
changes with exit-on-db-update set, or SIGINT/SIGTERM arrives.

Exit status: 0 on a clean stop, 1 for bad options, connection trouble or
an empty pool.
"""

import asyncio
import logging
import signal
import sys

from .args import Options, ParseError, build_parser, parse
from .lib.watchdog import notify_status, watchdog_loop
from .load import FileLoader, MPDLoader
from .loop import LoopExit, LoopState, describe_chain, log_chain_length, run_loop
from .players.base import Player
from .players.mpd import PLAYER_ERRORS, ConnectError, connect
from .shuffle import ShuffleChain
from .status import StatusServer

log = logging.getLogger("ashuffle")


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


async def build_chain(player: Player, options: Options) -> ShuffleChain:
    chain = ShuffleChain(options.tweak.window_size)
    if options.file_in is not None:
        loader = FileLoader(player, options.file_in, options.ruleset,
                            options.group_by, check=options.check_uris)
    else:
        loader = MPDLoader(player, options.ruleset, options.group_by)
    await loader.load(chain)
    return chain


async def enqueue_only(player: Player, chain: ShuffleChain, count: int) -> int:
    """Add *count* picks to the queue without touching playback."""
    added = 0
    for _ in range(count):
        picked = chain.pick()
        await player.add_many(picked)
        added += len(picked)
    log.info("Added %d songs.", added)
    return added


async def serve(player: Player, chain: ShuffleChain, options: Options) -> LoopExit | None:
    """Run the idle loop until it returns or a stop signal arrives."""
    state = LoopState()
    status_server = None
    if options.status_port:
        status_server = StatusServer(chain, options, state, port=options.status_port)
        await status_server.start()

    watchdog_task = asyncio.create_task(watchdog_loop())
    notify_status(describe_chain(chain))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    loop_task = asyncio.create_task(run_loop(player, chain, options, state=state))
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        done, _ = await asyncio.wait({loop_task, stop_task},
                                     return_when=asyncio.FIRST_COMPLETED)
        if loop_task in done:
            return loop_task.result()
        log.info("Stop requested, shutting down")
        return None
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        for task in (loop_task, stop_task, watchdog_task):
            task.cancel()
        await asyncio.gather(loop_task, stop_task, watchdog_task,
                             return_exceptions=True)
        if status_server:
            await status_server.stop()


async def run(options: Options, *, connect_fn=connect) -> int:
    try:
        player = await connect_fn(options.host, options.port)
    except ConnectError as e:
        log.error("%s", e)
        return 1

    try:
        chain = await build_chain(player, options)

        if options.test.print_all_songs_and_exit:
            for uri in chain.items():
                print(uri)
            return 0

        if chain.len() == 0:
            log.error("Song pool is empty.")
            return 1
        log_chain_length(chain)

        if options.queue_only:
            await enqueue_only(player, chain, options.queue_only)
            return 0

        await serve(player, chain, options)
        return 0
    except PLAYER_ERRORS as e:
        log.error("MPD error: %s", e)
        return 1
    finally:
        if options.file_in is not None and options.file_in is not sys.stdin:
            options.file_in.close()
        await player.close()


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        options = parse(argv)
    except ParseError as e:
        print(f"ashuffle: {e}", file=sys.stderr)
        print(build_parser().format_usage(), file=sys.stderr, end="")
        return 1

    setup_logging(options.verbose)
    return asyncio.run(run(options))
