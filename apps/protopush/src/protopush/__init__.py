"""Prototype publishing CLI."""
