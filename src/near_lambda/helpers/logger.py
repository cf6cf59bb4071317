# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler


def _rich_handler(level: int, console: Console, tracebacks: bool) -> RichHandler:
    return RichHandler(
        level=level,
        console=console,
        rich_tracebacks=tracebacks,
        markup=True,
        show_time=True,
        show_level=True,
        show_path=False,
    )


def setup_logger(
    name: str = "near_lambda",
    level: int | str | None = None,
    console: Console | None = None,
    to_stderr: bool = False,
) -> logging.Logger:
    """Return a rich-backed logger.

    When `level` is None the level comes from `NEAR_LAMBDA_LOG_LEVEL`.
    Records at INFO and below go to stdout, WARNING and above to stderr.
    If stdout is not a terminal (piped result JSON, CI) everything goes to
    stderr so stdout stays machine readable.
    """
    if level is None:
        from near_lambda.config.settings import get_settings

        level = get_settings().log_level.upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    stderr_console = Console(stderr=True)
    if to_stderr or not sys.stdout.isatty():
        logger.addHandler(_rich_handler(logging.DEBUG, stderr_console, tracebacks=True))
        return logger

    stdout_handler = _rich_handler(logging.DEBUG, console or Console(), tracebacks=False)
    stdout_handler.addFilter(lambda record: record.levelno <= logging.INFO)
    logger.addHandler(stdout_handler)
    logger.addHandler(_rich_handler(logging.WARNING, stderr_console, tracebacks=True))
    return logger
