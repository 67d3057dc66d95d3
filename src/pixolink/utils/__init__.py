"""Shared utilities for PixoLink."""

from pixolink.utils.logger import (
    add_file_handler,
    current_log_context,
    get_logger,
    log_context,
    set_framework_log_level,
)

__all__ = ['get_logger', 'set_framework_log_level', 'add_file_handler', 'log_context', 'current_log_context']
