"""HTTP API for taskroster."""
