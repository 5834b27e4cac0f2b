"""teamtasks: shared team task list over a flat JSON document."""

__version__ = "0.1.0"
