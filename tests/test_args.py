"""Tests for command-line parsing."""

import sys

import pytest

from ashuffle.args import (
    BY_ALBUM,
    Options,
    ParseError,
    parse,
    parse_bool,
    parse_duration,
    parse_unsigned,
)
from ashuffle.players.base import Song


class TestDefaults:
    def test_no_arguments(self):
        opts = parse([])
        assert opts.ruleset == []
        assert opts.queue_only == 0
        assert opts.file_in is None
        assert opts.check_uris is True
        assert opts.queue_buffer == 0
        assert opts.host is None
        assert opts.port == 0
        assert opts.group_by == []
        assert opts.status_port == 0
        assert opts.verbose is False

    def test_default_tweaks(self):
        tweak = parse([]).tweak
        assert tweak.window_size == 7
        assert tweak.play_on_startup is True
        assert tweak.suspend_timeout == 0
        assert tweak.exit_on_db_update is False

    def test_options_parse_classmethod(self):
        assert Options.parse(["-q", "3"]).queue_buffer == 3


class TestFlags:
    @pytest.mark.parametrize("flag", ["-o", "--only"])
    def test_only(self, flag):
        assert parse([flag, "5"]).queue_only == 5

    @pytest.mark.parametrize("flag", ["-q", "--queue-buffer"])
    def test_queue_buffer(self, flag):
        assert parse([flag, "10"]).queue_buffer == 10

    @pytest.mark.parametrize("flag", ["-n", "--no-check"])
    def test_no_check(self, flag):
        assert parse([flag]).check_uris is False

    def test_host_and_port(self):
        opts = parse(["--host", "secret@music.lan", "-p", "6601"])
        assert opts.host == "secret@music.lan"
        assert opts.port == 6601

    def test_file(self, tmp_path):
        path = tmp_path / "songs.txt"
        path.write_text("a.mp3\nb.mp3\n")
        opts = parse(["-f", str(path)])
        try:
            assert opts.file_in.read() == "a.mp3\nb.mp3\n"
        finally:
            opts.file_in.close()

    def test_file_dash_is_stdin(self):
        assert parse(["--file", "-"]).file_in is sys.stdin

    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseError, match="could not open"):
            parse(["-f", str(tmp_path / "nope.txt")])

    def test_verbose(self):
        assert parse(["-v"]).verbose is True

    def test_status_port(self):
        assert parse(["--status-port", "8080"]).status_port == 8080

    def test_unsigned_rejected(self):
        with pytest.raises(ParseError, match="couldn't convert '-3' to an unsigned integer"):
            parse(["--queue-buffer=-3"])

    def test_non_numeric_only(self):
        with pytest.raises(ParseError, match="couldn't convert 'lots' to an unsigned integer"):
            parse(["-o", "lots"])

    @pytest.mark.parametrize("argv,flag", [
        (["-o"], "-o"),
        (["--only"], "--only"),
        (["--queue-buffer"], "--queue-buffer"),
        (["-e"], "-e"),
    ])
    def test_missing_argument(self, argv, flag):
        with pytest.raises(ParseError, match=f"no argument supplied for '{flag}'"):
            parse(argv)

    def test_unknown_flag(self):
        with pytest.raises(ParseError):
            parse(["--shuffle-harder"])


class TestExclude:
    def test_single_rule(self):
        opts = parse(["-e", "artist", "beatles"])
        assert len(opts.ruleset) == 1
        rule = opts.ruleset[0]
        assert rule.accepts(Song("a", {"artist": "The Beatles"})) is False
        assert rule.accepts(Song("b", {"artist": "Stones"})) is True

    def test_patterns_combine_in_one_rule(self):
        opts = parse(["-e", "artist", "beatles", "album", "abbey"])
        assert len(opts.ruleset) == 1
        assert len(opts.ruleset[0].patterns) == 2

    def test_each_flag_is_a_rule(self):
        opts = parse(["-e", "artist", "beatles", "--exclude", "genre", "jazz"])
        assert len(opts.ruleset) == 2

    def test_repeated_tag_starts_new_rule(self):
        opts = parse(["-e", "artist", "beatles", "artist", "stones"])
        assert len(opts.ruleset) == 2

    def test_tag_names_case_insensitive(self):
        opts = parse(["-e", "ARTIST", "x"])
        assert opts.ruleset[0].patterns[0].tag == "artist"

    def test_odd_values(self):
        with pytest.raises(ParseError, match="no value supplied for match 'album'"):
            parse(["-e", "artist", "beatles", "album"])

    def test_unknown_tag(self):
        with pytest.raises(ParseError, match="unknown tag 'colour'"):
            parse(["-e", "colour", "blue"])


class TestGroupBy:
    def test_group_by(self):
        assert parse(["-g", "albumartist", "album"]).group_by == ["albumartist", "album"]

    def test_by_album(self):
        assert parse(["--by-album"]).group_by == BY_ALBUM == ["album", "date"]

    def test_only_once(self):
        with pytest.raises(ParseError, match="'--group-by' can only be provided once"):
            parse(["-g", "album", "--group-by", "date"])

    def test_by_album_conflicts_with_group_by(self):
        with pytest.raises(ParseError, match="'--by-album' can only be provided once"):
            parse(["-g", "album", "--by-album"])

    def test_unknown_tag(self):
        with pytest.raises(ParseError, match="unknown tag"):
            parse(["-g", "nonsense"])


class TestTweaks:
    def test_window_size(self):
        assert parse(["-t", "window-size=3"]).tweak.window_size == 3

    def test_window_size_must_be_positive(self):
        with pytest.raises(ParseError, match=r"window-size must be >= 1 \(0 given\)"):
            parse(["-t", "window-size=0"])

    def test_play_on_startup(self):
        assert parse(["--tweak", "play-on-startup=no"]).tweak.play_on_startup is False

    def test_suspend_timeout(self):
        assert parse(["-t", "suspend-timeout=250ms"]).tweak.suspend_timeout == pytest.approx(0.25)

    def test_exit_on_db_update(self):
        assert parse(["-t", "exit-on-db-update=true"]).tweak.exit_on_db_update is True

    def test_last_one_wins(self):
        opts = parse(["-t", "window-size=3", "-t", "window-size=9"])
        assert opts.tweak.window_size == 9

    @pytest.mark.parametrize("value", ["window-size", "=3", "window-size="])
    def test_malformed(self, value):
        with pytest.raises(ParseError, match="tweak must be of the form"):
            parse(["-t", value])

    def test_unrecognized(self):
        with pytest.raises(ParseError, match="unrecognized tweak 'volume'"):
            parse(["-t", "volume=11"])

    def test_bad_bool(self):
        with pytest.raises(ParseError, match="boolean"):
            parse(["-t", "play-on-startup=maybe"])


class TestConfigFallback:
    def test_queue_buffer_from_config(self, write_config):
        write_config('{"queue": {"buffer": 5}}')
        assert parse([]).queue_buffer == 5

    def test_flag_beats_config(self, write_config):
        write_config('{"queue": {"buffer": 5}}')
        assert parse(["-q", "0"]).queue_buffer == 0

    def test_tweaks_from_config(self, write_config):
        write_config('{"tweak": {"window_size": 4, "suspend_timeout": "2s",'
                     ' "play_on_startup": false}}')
        tweak = parse([]).tweak
        assert tweak.window_size == 4
        assert tweak.suspend_timeout == 2.0
        assert tweak.play_on_startup is False

    def test_status_port_from_config(self, write_config):
        write_config('{"status": {"port": 9000}}')
        assert parse([]).status_port == 9000

    def test_bad_config_window(self, write_config):
        write_config('{"tweak": {"window_size": 0}}')
        with pytest.raises(ParseError, match="window-size"):
            parse([])

    def test_flag_overrides_bad_config_window(self, write_config):
        write_config('{"tweak": {"window_size": 0}}')
        assert parse(["-t", "window-size=5"]).tweak.window_size == 5

    def test_flag_overrides_config_booleans(self, write_config):
        write_config('{"tweak": {"exit_on_db_update": true}}')
        assert parse(["-t", "exit-on-db-update=no"]).tweak.exit_on_db_update is False

    @pytest.mark.parametrize("value,expected", [
        ('"false"', False), ('"no"', False), ('"off"', False), ("0", False),
        ('"yes"', True), ('"true"', True), ("true", True), ("false", False),
    ])
    def test_config_booleans_parsed(self, write_config, value, expected):
        write_config('{"tweak": {"exit_on_db_update": ' + value + ','
                     ' "play_on_startup": ' + value + '}}')
        tweak = parse([]).tweak
        assert tweak.exit_on_db_update is expected
        assert tweak.play_on_startup is expected

    def test_bad_config_boolean(self, write_config):
        write_config('{"tweak": {"play_on_startup": "sometimes"}}')
        with pytest.raises(ParseError, match="boolean"):
            parse([])

    def test_config_window_size_as_string(self, write_config):
        write_config('{"tweak": {"window_size": "4"}}')
        assert parse([]).tweak.window_size == 4


class TestTestOptions:
    def test_print_all(self):
        opts = parse(["--test_enable_option_do_not_use", "print_all_songs_and_exit"])
        assert opts.test.print_all_songs_and_exit is True

    def test_unknown(self):
        with pytest.raises(ParseError, match="unrecognized test option"):
            parse(["--test_enable_option_do_not_use", "nope"])


class TestConverters:
    @pytest.mark.parametrize("value,expected", [("0", 0), ("12", 12)])
    def test_unsigned(self, value, expected):
        assert parse_unsigned(value) == expected

    @pytest.mark.parametrize("value", ["", "-1", "1.5", "x"])
    def test_unsigned_rejects(self, value):
        with pytest.raises(ParseError):
            parse_unsigned(value)

    @pytest.mark.parametrize("value,expected", [
        ("yes", True), ("On", True), ("1", True), ("false", False), ("OFF", False),
    ])
    def test_bool(self, value, expected):
        assert parse_bool(value) is expected

    @pytest.mark.parametrize("value,expected", [
        ("500ms", 0.5), ("2s", 2.0), ("1.5m", 90.0), ("1h", 3600.0), ("3", 3.0), (4, 4.0),
    ])
    def test_duration(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["soon", "-1s", "5 fortnights", -2])
    def test_duration_rejects(self, value):
        with pytest.raises(ParseError):
            parse_duration(value)
