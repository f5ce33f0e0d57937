"""Backup and restore of terminal configuration files."""

__version__ = "0.1.0"
