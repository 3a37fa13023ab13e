"""Measurement reading mass upload tool."""

__version__ = "0.1.0"
