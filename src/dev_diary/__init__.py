"""Infer how time is spent in an editor session and report on it."""

__version__ = "0.1.0"
