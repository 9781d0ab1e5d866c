"""Formatting and time helpers."""
