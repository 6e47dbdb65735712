"""Local process execution with live output capture, deadlines and retries."""

__version__ = "0.1.0"
