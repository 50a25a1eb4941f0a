"""Canonical structured log field names used by the history layer."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
SERVICE = "service"
EXCEPTION = "exception"

# Nested object holding the bound archive context.
HISTORY = "history"
