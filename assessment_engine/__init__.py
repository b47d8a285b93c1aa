"""Assessment Session Engine: timed multi-question assessment sessions with scoring and feedback."""

__version__ = "1.0.0"
