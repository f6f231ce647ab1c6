"""Formatting utilities for bkup output."""

import os
from datetime import datetime
from typing import List, Optional

from ..core.models import BackupSlot


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Human readable size string.
    """
    if size_bytes < 1024:
        return f"{size_bytes}B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes // 1024}KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes // (1024 * 1024)}MB"
    else:
        return f"{size_bytes // (1024 * 1024 * 1024)}GB"


def format_date(dt: datetime, short: bool = False) -> str:
    """Format datetime for display in local time.

    Args:
        dt: Datetime to format.
        short: If True, use short format.

    Returns:
        Formatted date string.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    if short:
        return dt.strftime('%Y-%m-%d %H:%M')
    else:
        return dt.strftime('%Y-%m-%d %H:%M:%S')


def tree_size(path) -> int:
    """Total size of regular files below ``path``, symlinks not followed."""
    total = 0
    for root, dirs, files in os.walk(path):
        for name in files:
            try:
                st = os.lstat(os.path.join(root, name))
            except OSError:
                continue
            total += st.st_size
    return total


def format_slot_table(slots: List[BackupSlot], newest: Optional[BackupSlot] = None,
                      show_size: bool = False) -> List[str]:
    """Render slots as aligned text lines, one per slot.

    Args:
        slots: Slots in display order.
        newest: Slot to mark as newest.
        show_size: Include the size of each slot's tree.

    Returns:
        Lines of text without trailing newlines.
    """
    lines = []
    for slot in slots:
        marker = "*" if newest is not None and slot.slot_number == newest.slot_number else " "
        source = "meta" if slot.has_metadata else "mtime"
        line = f"{marker} {slot.slot_number:>4}  {format_date(slot.created_at)}  {source:<5}"
        if show_size:
            line += f"  {format_file_size(tree_size(slot.path)):>6}"
        lines.append(f"{line}  {slot.path.name}")
    return lines
