"""Systemd notify integration for the ashuffle daemon.

Sends READY/STATUS/WATCHDOG messages to the systemd notify socket.
Silently no-ops when NOTIFY_SOCKET is unset (interactive runs, tests).

Usage:
    from ashuffle.lib.watchdog import notify_status, watchdog_loop
    asyncio.create_task(watchdog_loop())
    notify_status("Picking from 120 groups")
"""

import asyncio
import logging
import os
import socket

logger = logging.getLogger(__name__)


def _notify_socket() -> str | None:
    return os.environ.get("NOTIFY_SOCKET")


def sd_notify(msg: str) -> bool:
    """Send a notification message to the systemd notify socket.

    Returns True if a datagram was sent.
    """
    addr = _notify_socket()
    if not addr:
        return False
    if addr[0] == "@":
        addr = "\0" + addr[1:]
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    try:
        sock.sendto(msg.encode(), addr)
    except OSError as e:
        logger.debug("sd_notify(%r) failed: %s", msg, e)
        return False
    finally:
        sock.close()
    return True


def notify_status(text: str) -> bool:
    """Publish a one-line status string (shown by `systemctl status`)."""
    return sd_notify(f"STATUS={text}")


async def watchdog_loop(interval: int = 20):
    """Send WATCHDOG=1 every *interval* seconds.  Call as asyncio.create_task().

    Also sends READY=1 on first invocation so systemd knows the pool is
    loaded (requires Type=notify in the unit file).
    """
    sd_notify("READY=1")
    logger.debug("Watchdog started (interval=%ds)", interval)
    while True:
        sd_notify("WATCHDOG=1")
        await asyncio.sleep(interval)
