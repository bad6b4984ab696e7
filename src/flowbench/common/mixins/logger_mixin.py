# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Logger mixin giving components self.info(...)-style logging methods."""

import logging


class FlowBenchLoggerMixin:
    """Attach a named logger to a component and expose level methods on it.

    The logger name defaults to the concrete class's module, so log records can
    be filtered per component.
    """

    def __init__(self, logger_name: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.logger = logging.getLogger(logger_name or self.__class__.__module__)

    @property
    def is_debug_enabled(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def exception(self, msg: str) -> None:
        self.logger.exception(msg)
