"""TracePulse: event correlation and root-cause hypothesis engine."""

__version__ = "1.0.0"
