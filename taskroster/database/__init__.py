"""Persistence layer for taskroster."""
