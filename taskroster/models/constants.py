"""Constants for taskroster.

This module centralizes the magic values and defaults used throughout the application.
"""

import os

# Sentinel stored in Task.assigned_user_name when no user owns the task
UNASSIGNED_USER_NAME = "unassigned"

# Empty owner pointer
NO_USER = ""

# Listing defaults (None means unbounded)
TASK_LIST_DEFAULT_LIMIT = int(os.getenv("TASK_LIST_DEFAULT_LIMIT", "100"))
USER_LIST_DEFAULT_LIMIT = None

# Largest skip/limit a database backend can bind (signed 64-bit)
MAX_QUERY_NUMBER = 2 ** 63 - 1

# Maximum nesting of $and/$or/$nor in a where filter
MAX_FILTER_DEPTH = 32

# Projection parameter names, most specific first. `filter` is a legacy alias of `select`.
PROJECTION_PARAM_NAMES = ("select", "filter")
