"""
Utility functions for the Untappd mirror.

Logging:
- setup_logging(): Configure structured logging with structlog
- get_logger(name): Get a logger instance

Time:
- parse_checkin_timestamp(value): Normalize feed/export timestamps to UTC
- date_partition(dt): YYYY/MM/DD partition for storage keys
"""

from untappd_mirror.utils.logging import get_logger, setup_logging
from untappd_mirror.utils.time import date_partition, format_timestamp, parse_checkin_timestamp

__all__ = [
    "date_partition",
    "format_timestamp",
    "get_logger",
    "parse_checkin_timestamp",
    "setup_logging",
]
