# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Logging setup built on rich."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_RICH_HANDLER_NAME = "flowbench-rich"


def setup_rich_logging(level: int | str = logging.INFO, console: Console | None = None) -> None:
    """Install a single RichHandler on the root logger.

    Calling this more than once replaces the previously installed handler, so the
    CLI can adjust verbosity without duplicating output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _RICH_HANDLER_NAME:
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        log_time_format="[%X]",
    )
    handler.set_name(_RICH_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)

    # temporalio is chatty at INFO while reconnecting.
    logging.getLogger("temporalio").setLevel(max(level, logging.WARNING))
