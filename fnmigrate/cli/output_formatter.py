#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""
Migration CLI Output Formatter
==============================

Terminal rendering for the `migrate` command when --json is not given:
status banners, aligned key/value blocks, box-drawn tables and a one-line
phase pipeline. Colour is applied only on a TTY, and never when NO_COLOR
is set (FORCE_COLOR=1 overrides).

Usage::

    from fnmigrate.cli.output_formatter import (
        format_banner, format_kv, format_table, format_list, format_pipeline,
    )
"""

from __future__ import annotations

import os
import re
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

_ANSI_ESCAPE = re.compile(r"\033\[[0-9;]*m")


def _is_tty() -> bool:
    try:
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
    except ValueError:  # closed stream
        return False


def colors_enabled() -> bool:
    if os.environ.get("FORCE_COLOR", "") == "1":
        return True
    return _is_tty() and os.environ.get("NO_COLOR") is None


class _Ansi:
    """ANSI helpers; every method degrades to plain text when colour is off."""

    _CODES = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "underline": "\033[4m",
        "red": "\033[31m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "blue": "\033[34m",
        "cyan": "\033[36m",
    }

    @classmethod
    def wrap(cls, text: str, *styles: str) -> str:
        if not styles or not colors_enabled():
            return text
        prefix = "".join(cls._CODES.get(s, "") for s in styles)
        return f"{prefix}{text}{cls._CODES['reset']}"

    @staticmethod
    def strip(text: str) -> str:
        return _ANSI_ESCAPE.sub("", text)


C = _Ansi

# Substring -> styles, first match wins; order puts "failed_fatal" before "failed".
_VALUE_COLORS: List[Tuple[str, Tuple[str, ...]]] = [
    ("failed_fatal", ("red", "bold")),
    ("failed_degraded", ("yellow", "bold")),
    ("cancelled", ("red",)),
    ("failed", ("red",)),
    ("degraded", ("yellow", "bold")),
    ("warning", ("yellow",)),
    ("pending", ("yellow",)),
    ("running", ("cyan",)),
    ("succeeded", ("green",)),
    ("completed", ("green",)),
    ("scaffolded", ("green",)),
]


def _auto_color_value(value: str) -> str:
    lower = value.lower().strip()
    for pattern, styles in _VALUE_COLORS:
        if pattern in lower:
            return C.wrap(value, *styles)
    return value


def _visible_len(text: str) -> int:
    return len(C.strip(str(text)))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]],
                 title: Optional[str] = None) -> str:
    """Box-drawn table, column widths fitted to the widest cell."""
    str_rows = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in str_rows:
        for i, cell in enumerate(row[:len(widths)]):
            widths[i] = max(widths[i], len(cell))

    def _hline(left, mid, right):
        return left + mid.join("─" * (w + 2) for w in widths) + right

    def _row(cells, color_fn=None):
        parts = []
        for i, cell in enumerate(cells[:len(widths)]):
            shown = color_fn(cell) if color_fn else cell
            parts.append(f" {shown}{' ' * (widths[i] - len(cell))} ")
        return "│" + "│".join(parts) + "│"

    lines = []
    if title:
        lines += [C.wrap(f"  {title}", "bold", "underline"), ""]
    lines.append(_hline("┌", "┬", "┐"))
    lines.append(_row(list(headers), lambda c: C.wrap(c, "bold", "cyan")))
    lines.append(_hline("├", "┼", "┤"))
    lines += [_row(r, _auto_color_value) for r in str_rows]
    lines.append(_hline("└", "┴", "┘"))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Banner
# ---------------------------------------------------------------------------

# RunStatus value -> (icon, styles)
_BANNER_STYLES = {
    "completed": ("[OK]", ("green",)),
    "degraded": ("[!!]", ("yellow",)),
    "failed": ("[XX]", ("red", "bold")),
    "cancelled": ("[--]", ("red",)),
    "running": ("[..]", ("cyan",)),
}


def format_banner(status: str, message: str) -> str:
    icon, styles = _BANNER_STYLES.get(status.lower(), ("[ii]", ("blue",)))
    width = max(60, len(message) + 12)
    rule = "═" * width
    inner = f"  {icon}  {message}"
    inner += " " * max(width - _visible_len(inner), 0)
    return "\n".join([C.wrap(rule, *styles), C.wrap(inner, *styles), C.wrap(rule, *styles)])


# ---------------------------------------------------------------------------
# Key/value and lists
# ---------------------------------------------------------------------------

def format_kv(pairs: Union[Dict[str, Any], List[Tuple[str, Any]]],
              title: Optional[str] = None) -> str:
    items = list(pairs.items()) if isinstance(pairs, dict) else list(pairs)
    if not items:
        return ""
    width = max(len(str(k)) for k, _ in items)
    lines = []
    if title:
        lines += [C.wrap(f"  {title}", "bold", "underline"), ""]
    for key, val in items:
        lines.append(f"  {C.wrap(str(key).ljust(width), 'cyan')} : {_auto_color_value(str(val))}")
    return "\n".join(lines)


def format_list(items: Sequence[str], numbered: bool = False) -> str:
    lines = []
    for i, item in enumerate(items, start=1):
        prefix = f"  {i}." if numbered else "  •"
        lines.append(f"{prefix} {_auto_color_value(str(item))}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Phase pipeline
# ---------------------------------------------------------------------------

# PhaseStatus value -> (icon, style)
_PIPELINE_ICONS = {
    "succeeded": ("✔", "green"),
    "running": ("▶", "cyan"),
    "pending": ("○", "dim"),
    "failed_degraded": ("!", "yellow"),
    "failed_fatal": ("✘", "red"),
}


def format_pipeline(steps: Sequence[Dict[str, str]]) -> str:
    """One-line pipeline; steps are {"name": ..., "status": <PhaseStatus value>}."""
    parts = []
    for i, step in enumerate(steps):
        status = str(step.get("status", "pending")).lower()
        icon, style = _PIPELINE_ICONS.get(status, ("○", "dim"))
        parts.append(f" {C.wrap(icon, style)} {C.wrap(step.get('name', '?'), style)} ")
        if i < len(steps) - 1:
            parts.append(C.wrap("─▸", "green" if status == "succeeded" else "dim"))
    return "".join(parts)
