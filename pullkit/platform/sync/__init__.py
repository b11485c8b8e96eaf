"""Caller-side sync helpers."""
