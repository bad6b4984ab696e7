# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Parse and format duration strings such as ``30s``, ``5m``, ``1h30m`` or ``500ms``."""

import re

__all__ = ["format_duration", "parse_duration"]

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | int | float) -> float:
    """Convert a duration to seconds.

    Numbers, and strings holding a bare number, are taken as seconds. Otherwise the
    string must be a sequence of ``<number><unit>`` components with units
    ns, us, ms, s, m or h, e.g. ``1m30s``.

    Raises:
        ValueError: If the value is negative or cannot be parsed.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        if not text:
            raise ValueError("Invalid duration: empty string")
        try:
            seconds = float(text)
        except ValueError:
            position = 0
            seconds = 0.0
            for match in _COMPONENT_RE.finditer(text):
                if match.start() != position:
                    break
                seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
                position = match.end()
            if position != len(text) or position == 0:
                raise ValueError(
                    f"Invalid duration: '{value}'. "
                    "Use seconds (e.g. 30) or units ns, us, ms, s, m, h (e.g. 1m30s, 500ms)."
                ) from None
    if seconds < 0:
        raise ValueError(f"Invalid duration: '{value}'. Durations cannot be negative.")
    return seconds


def _trim(number: float) -> str:
    return f"{number:.6f}".rstrip("0").rstrip(".")


def format_duration(seconds: float) -> str:
    """Render seconds as a compact duration string (``5m0s``, ``1.5s``, ``500ms``)."""
    if seconds <= 0:
        return "0s"
    if seconds < 1:
        return f"{_trim(seconds * 1000)}ms"
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{int(hours)}h{int(minutes)}m{_trim(secs)}s"
    if minutes:
        return f"{int(minutes)}m{_trim(secs)}s"
    return f"{_trim(secs)}s"
