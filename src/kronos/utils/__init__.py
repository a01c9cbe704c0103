"""Kronos utilities."""
