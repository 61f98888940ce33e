"""Core engine for taskroster: query options parsing and assignment synchronization."""
