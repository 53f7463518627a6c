"""Tailmon: live-refresh fleet health dashboard."""

__version__ = "0.1.0"
