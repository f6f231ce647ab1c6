"""Utility modules for bkup."""

from .formatters import format_date, format_file_size, format_slot_table
from .shell import default_shell, open_subshell

__all__ = ["format_date", "format_file_size", "format_slot_table", "default_shell", "open_subshell"]
