"""Aaref — anonymous salary intake with statistical trust scoring."""

__version__ = "0.1.0"
