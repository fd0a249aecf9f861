"""Reading session tracking and time-bucketed reading statistics."""

__version__ = "0.1.0"
