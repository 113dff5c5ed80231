"""Composite league ranking engine for fantasy football leagues."""

__version__ = "0.1.0"
