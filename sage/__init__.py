"""Sage governance and memory core."""
