"""CLI module for shadowindex."""
