"""ELD trip planner client: address search, map lifecycle and route overlay."""

__version__ = "0.1.0"
