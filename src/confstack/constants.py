"""
Shared constants for confstack.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

DEFAULT_SEPARATOR = "."
"""Default separator between tiers of a key, e.g. ``db.postgres.host``."""

DEFAULT_TAG = "config"
"""Default field metadata name used to override keys during unmarshalling."""

DEFAULT_ENV_LIST_SEPARATOR = ":"
"""Separator used to split environment variable values into lists."""

DEFAULT_POLL_INTERVAL = 1.0
"""Default interval, in seconds, between polls of a watched file."""

ENV_PREFIX = "CONFSTACK_"
"""Environment variable prefix read by the command-line interface."""

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1
