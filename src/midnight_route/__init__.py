"""Midnight-following route synthesis engine."""
