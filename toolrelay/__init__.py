"""toolrelay: bridges assistant runs with externally executed tool calls."""

__version__ = "1.0.0"
