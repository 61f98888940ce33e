"""taskroster: users, tasks and the assignments between them."""

__version__ = "0.1.0"
