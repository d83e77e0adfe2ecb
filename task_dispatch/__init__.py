"""Bulk contact upload -> agent task distribution tool."""

__version__ = "0.1.0"
