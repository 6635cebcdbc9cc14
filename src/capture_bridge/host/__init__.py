"""Localhost HTTP host for the broker."""
