"""Sharded scheduling of timed load-generation actions, with text output for dry runs and metrics."""

__version__ = "1.0.0"