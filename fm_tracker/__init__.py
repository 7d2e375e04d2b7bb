"""FM station tracker: map, filter and inspect licensed FM transmitters."""

__version__ = "1.0.0"
