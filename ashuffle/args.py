"""
Command-line options for ashuffle.

    ashuffle [-o N] [-n] [-f FILE] [-e TAG VALUE ...] [-q N] [--host HOST]
             [-p PORT] [-g TAG ... | --by-album] [-t NAME=VALUE ...]

Defaults for the queue buffer and the tweaks come from the JSON config
(see lib/config.py); flags always win.  Every problem is reported as a
ParseError with a message meant for the operator.
"""

import argparse
import re
import sys
from dataclasses import dataclass, field
from typing import TextIO

from .lib.config import cfg
from .rule import Rule, parse_tag
from .shuffle import DEFAULT_WINDOW_SIZE

BY_ALBUM = ["album", "date"]

_DURATION_RE = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h)?$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}
_TRUE = {"yes", "true", "on", "1"}
_FALSE = {"no", "false", "off", "0"}


class ParseError(Exception):
    """Bad command line or config value."""


@dataclass
class Tweaks:
    window_size: int = DEFAULT_WINDOW_SIZE
    play_on_startup: bool = True
    suspend_timeout: float = 0.0  # seconds; 0 disables suspend
    exit_on_db_update: bool = False


@dataclass
class DebugOptions:
    print_all_songs_and_exit: bool = False


@dataclass
class Options:
    ruleset: list[Rule] = field(default_factory=list)
    queue_only: int = 0
    file_in: TextIO | None = None
    check_uris: bool = True
    queue_buffer: int = 0
    host: str | None = None
    port: int = 0
    group_by: list[str] = field(default_factory=list)
    tweak: Tweaks = field(default_factory=Tweaks)
    test: DebugOptions = field(default_factory=DebugOptions)
    status_port: int = 0
    verbose: bool = False

    @classmethod
    def parse(cls, argv: list[str]) -> "Options":
        return parse(argv)


# ── Value converters ──

def parse_unsigned(value: str) -> int:
    if not value.isdigit():
        raise ParseError(f"couldn't convert '{value}' to an unsigned integer")
    return int(value)


def parse_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"couldn't convert '{value}' to an integer") from None


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ParseError(f"couldn't convert '{value}' to a boolean")


def parse_duration(value) -> float:
    """'500ms', '2s', '1.5m', '1h' or a bare number of seconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        m = _DURATION_RE.match(str(value).strip())
        if not m:
            raise ParseError(f"couldn't convert '{value}' to a duration")
        seconds = float(m.group(1)) * _DURATION_UNITS[m.group(2)]
    if seconds < 0:
        raise ParseError(f"duration must not be negative ({value} given)")
    return seconds


def check_window_size(size: int) -> int:
    if size < 1:
        raise ParseError(f"window-size must be >= 1 ({size} given)")
    return size


def _argparse_type(convert):
    """Adapt a converter so argparse reports its message for the flag."""
    def wrapped(value):
        try:
            return convert(value)
        except ParseError as e:
            raise argparse.ArgumentTypeError(str(e)) from None
    wrapped.__name__ = convert.__name__
    return wrapped


def _open_input(path: str) -> TextIO:
    if path == "-":
        return sys.stdin
    try:
        return open(path)
    except OSError as e:
        raise argparse.ArgumentTypeError(f"could not open '{path}': {e.strerror}") from None


# ── Custom actions ──

class _GroupAction(argparse.Action):
    """-g/--group-by and --by-album; only one of them, only once."""

    def __call__(self, parser, namespace, values, option_string=None):
        if namespace.group_by is not None:
            raise ParseError(f"'{option_string}' can only be provided once")
        if self.const is not None:
            namespace.group_by = list(self.const)
            return
        tags = []
        for name in values:
            tag = parse_tag(name)
            if tag is None:
                raise ParseError(f"unknown tag '{name}'")
            tags.append(tag)
        namespace.group_by = tags


class _ExcludeAction(argparse.Action):
    """-e TAG VALUE [TAG VALUE ...]; a repeated tag starts a new rule."""

    def __call__(self, parser, namespace, values, option_string=None):
        if len(values) % 2:
            raise ParseError(f"no value supplied for match '{values[-1]}'")
        rules = namespace.ruleset
        rule = Rule()
        for name, value in zip(values[::2], values[1::2]):
            tag = parse_tag(name)
            if tag is None:
                raise ParseError(f"unknown tag '{name}'")
            if rule.has_tag(tag):
                rules.append(rule)
                rule = Rule()
            rule.add_pattern(tag, value)
        if not rule.empty():
            rules.append(rule)


class _TweakAction(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        name, sep, value = values.partition("=")
        if not sep or not name or not value:
            raise ParseError("tweak must be of the form <name>=<value>")
        namespace.tweaks.append((name, value))


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises ParseError instead of exiting."""

    _MISSING_RE = re.compile(r"^argument (\S+): expected (?:one|at least one) argument")

    argv: list[str] = []

    def error(self, message):
        m = self._MISSING_RE.match(message)
        if m:
            names = m.group(1).split("/")
            used = [n for n in names if n in self.argv]
            raise ParseError(f"no argument supplied for '{(used or names)[-1]}'")
        raise ParseError(message)


def build_parser() -> _Parser:
    parser = _Parser(
        prog="ashuffle",
        description="Keep the MPD queue topped up with random songs.",
    )
    parser.add_argument("-o", "--only", dest="queue_only", metavar="N",
                        type=_argparse_type(parse_unsigned), default=0,
                        help="add N songs (groups) to the queue, then exit")
    parser.add_argument("-n", "--no-check", dest="check_uris", action="store_false",
                        help="with --file, don't check URIs against the MPD database")
    parser.add_argument("-f", "--file", dest="file_in", metavar="FILE",
                        type=_open_input, default=None,
                        help="read song URIs from FILE ('-' for stdin)")
    parser.add_argument("-e", "--exclude", nargs="+", metavar="TAG VALUE",
                        action=_ExcludeAction, dest="ruleset",
                        help="exclude songs whose TAG contains VALUE")
    parser.add_argument("-q", "--queue-buffer", dest="queue_buffer", metavar="N",
                        type=_argparse_type(parse_unsigned), default=None,
                        help="keep N songs queued after the current one")
    parser.add_argument("--host", default=None,
                        help="MPD host, optionally password@host")
    parser.add_argument("-p", "--port", metavar="PORT",
                        type=_argparse_type(parse_unsigned), default=0)
    parser.add_argument("-g", "--group-by", nargs="+", metavar="TAG",
                        action=_GroupAction, dest="group_by",
                        help="pick songs sharing these tags together")
    parser.add_argument("--by-album", nargs=0, action=_GroupAction, const=BY_ALBUM,
                        dest="group_by", help="same as --group-by album date")
    parser.add_argument("-t", "--tweak", action=_TweakAction, dest="tweaks",
                        metavar="NAME=VALUE",
                        help="window-size, play-on-startup, suspend-timeout, exit-on-db-update")
    parser.add_argument("--status-port", dest="status_port", metavar="PORT",
                        type=_argparse_type(parse_unsigned), default=None,
                        help="serve a JSON status page on this port")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--test_enable_option_do_not_use", dest="test_options",
                        action="append", default=[], help=argparse.SUPPRESS)
    parser.set_defaults(ruleset=[], tweaks=[], group_by=None)
    return parser


def _config_bool(key: str, default: bool) -> bool:
    value = cfg("tweak", key, default=default)
    if isinstance(value, bool):
        return value
    return parse_bool(str(value))


def _default_tweaks(overridden=()) -> Tweaks:
    """Tweaks from the config file, skipping any a -t flag will set."""
    tweak = Tweaks()
    if "window-size" not in overridden:
        tweak.window_size = check_window_size(
            parse_int(str(cfg("tweak", "window_size", default=DEFAULT_WINDOW_SIZE))))
    if "play-on-startup" not in overridden:
        tweak.play_on_startup = _config_bool("play_on_startup", True)
    if "suspend-timeout" not in overridden:
        tweak.suspend_timeout = parse_duration(cfg("tweak", "suspend_timeout", default=0))
    if "exit-on-db-update" not in overridden:
        tweak.exit_on_db_update = _config_bool("exit_on_db_update", False)
    return tweak


def _apply_tweak(tweak: Tweaks, name: str, value: str):
    if name == "window-size":
        tweak.window_size = check_window_size(parse_int(value))
    elif name == "play-on-startup":
        tweak.play_on_startup = parse_bool(value)
    elif name == "suspend-timeout":
        tweak.suspend_timeout = parse_duration(value)
    elif name == "exit-on-db-update":
        tweak.exit_on_db_update = parse_bool(value)
    else:
        raise ParseError(f"unrecognized tweak '{name}'")


def parse(argv: list[str]) -> Options:
    """Parse command-line arguments (without the program name)."""
    parser = build_parser()
    parser.argv = list(argv)
    ns = parser.parse_args(list(argv))

    opts = Options(
        ruleset=ns.ruleset,
        queue_only=ns.queue_only,
        file_in=ns.file_in,
        check_uris=ns.check_uris,
        host=ns.host,
        port=ns.port,
        group_by=ns.group_by or [],
        verbose=ns.verbose,
    )
    if ns.queue_buffer is not None:
        opts.queue_buffer = ns.queue_buffer
    else:
        opts.queue_buffer = parse_unsigned(str(cfg("queue", "buffer", default=0)))
    if ns.status_port is not None:
        opts.status_port = ns.status_port
    else:
        opts.status_port = parse_unsigned(str(cfg("status", "port", default=0)))

    opts.tweak = _default_tweaks({name for name, _ in ns.tweaks})
    for name, value in ns.tweaks:
        _apply_tweak(opts.tweak, name, value)

    for name in ns.test_options:
        if name == "print_all_songs_and_exit":
            opts.test.print_all_songs_and_exit = True
        else:
            raise ParseError(f"unrecognized test option '{name}'")
    return opts
