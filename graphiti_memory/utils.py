"""
Utility functions for Graphiti Memory
Copyright 2025 Jurden Bruce
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

NOISY_LOGGERS = ["httpx", "httpcore", "mcp"]


def configure_logging(verbose: bool = False):
    """Send logs to stderr so stdout stays clean for JSON output"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=sys.stderr,
        format=LOG_FORMAT,
    )
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)
