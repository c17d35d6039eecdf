"""Rhythm feature modules."""
