"""Membership and attendance workflow core for sports clubs."""

__version__ = "1.0.0"
