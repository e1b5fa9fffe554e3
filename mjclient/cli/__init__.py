"""CLI module for mjclient."""
