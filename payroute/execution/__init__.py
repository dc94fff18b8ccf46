"""Unsigned transaction construction for selected routes."""
