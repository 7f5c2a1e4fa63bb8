"""Backup CLI commands."""
