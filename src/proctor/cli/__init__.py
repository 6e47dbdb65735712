"""Command-line interface for proctor."""
