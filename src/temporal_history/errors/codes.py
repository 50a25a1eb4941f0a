"""Error code constants for the history layer.

Codes are stable and machine-readable; messages are for humans and may change.
"""

# Validation
INVALID_ARGUMENT = "INVALID_ARGUMENT"
HISTORY_READ_ONLY = "HISTORY_READ_ONLY"

# Registration
HISTORY_NAME_CONFLICT = "HISTORY_NAME_CONFLICT"
HISTORY_ALREADY_ATTACHED = "HISTORY_ALREADY_ATTACHED"
HISTORY_NOT_ATTACHED = "HISTORY_NOT_ATTACHED"
HISTORY_UNSUPPORTED_MAPPING = "HISTORY_UNSUPPORTED_MAPPING"
