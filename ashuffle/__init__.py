"""ashuffle — keep MPD's queue topped up with random songs or albums."""

__version__ = "1.0.0"
