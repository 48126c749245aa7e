"""
Tag-based exclusion rules.

A rule is a list of (tag, value) patterns.  A song *matches* the rule when
every pattern's tag is present on the song and contains the value,
ignoring case.  Matching songs are excluded from the pool:

    rule = Rule([("artist", "beatles"), ("album", "abbey")])
    rule.accepts(song)   # False for songs on Abbey Road by the Beatles
"""

from dataclasses import dataclass, field

from .players.base import Song

# Tag names understood by MPD (lower-cased, as they appear in listallinfo)
KNOWN_TAGS = frozenset({
    "artist", "artistsort", "album", "albumsort", "albumartist",
    "albumartistsort", "title", "titlesort", "track", "name", "genre",
    "mood", "date", "originaldate", "composer", "composersort",
    "performer", "conductor", "work", "movement", "movementnumber",
    "ensemble", "location", "grouping", "comment", "disc", "label",
    "musicbrainz_artistid", "musicbrainz_albumid",
    "musicbrainz_albumartistid", "musicbrainz_trackid",
    "musicbrainz_releasetrackid", "musicbrainz_releasegroupid",
    "musicbrainz_workid",
})


def parse_tag(name: str) -> str | None:
    """Normalise a tag name, or return None if MPD doesn't know it."""
    tag = name.strip().lower()
    return tag if tag in KNOWN_TAGS else None


@dataclass(frozen=True)
class Pattern:
    tag: str
    value: str

    def matches(self, song: Song) -> bool:
        actual = song.tag(self.tag)
        if actual is None:
            return False
        return self.value.lower() in actual.lower()


@dataclass
class Rule:
    patterns: list[Pattern] = field(default_factory=list)

    def add_pattern(self, tag: str, value: str):
        self.patterns.append(Pattern(tag, value))

    def has_tag(self, tag: str) -> bool:
        return any(p.tag == tag for p in self.patterns)

    def empty(self) -> bool:
        return not self.patterns

    def accepts(self, song: Song) -> bool:
        """True unless the song matches every pattern of this rule."""
        if not self.patterns:
            return True
        return not all(p.matches(song) for p in self.patterns)


def accepted(song: Song, ruleset: list[Rule]) -> bool:
    return all(rule.accepts(song) for rule in ruleset)
