"""Logging setup for autolab runs.

Two handlers hang off the ``autolab`` logger:

* a plain-text file handler (append mode) writing
  ``[YYYY-mm-dd HH:MM:SS] [LEVEL] [file:line] message``;
* a :class:`rich.logging.RichHandler` on the shared :mod:`autolab.ui`
  console, coloured by severity.

Modules keep using ``logging.getLogger(__name__)``; nothing else needs to
know where records go.
"""

from __future__ import annotations

import getpass
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from rich.logging import RichHandler

from autolab import ui

ROOT_LOGGER = "autolab"

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(filename)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def configure_logging(
    log_file: Optional[Path],
    *,
    verbose: bool = False,
    quiet: bool = False,
    command: str = "",
    region: str = "",
) -> logging.Logger:
    """Attach file and terminal handlers to the ``autolab`` logger.

    Safe to call more than once; previous handlers are replaced.  With
    *quiet* the terminal only shows warnings and errors.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    console_handler = RichHandler(
        console=ui.console,
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    console_handler.setLevel(logging.WARNING if quiet else level)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
        _write_session_header(log_file, command=command, region=region)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def _write_session_header(log_file: Path, *, command: str, region: str) -> None:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    bar = "=" * 70
    lines = [
        "",
        bar,
        f"Session started: {datetime.now().strftime(DATE_FORMAT)}",
        f"Command: {command or ' '.join(sys.argv)}",
        f"User: {user}",
        f"Region: {region or '-'}",
        bar,
    ]
    with log_file.open("a", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")


class SectionResult:
    """Mutable flag a section body sets when it fails without raising."""

    def __init__(self) -> None:
        self.failed = False


@contextmanager
def section(
    name: str, logger: Optional[logging.Logger] = None
) -> Iterator[SectionResult]:
    """Log ``>>> Starting: name`` / ``<<< Completed: name [STATUS]``.

    The status is ``FAILED`` when the body raises (the exception propagates)
    or sets ``failed`` on the yielded :class:`SectionResult`.  Records carry
    the location of the ``with`` statement, not this module.
    """
    log = logger or logging.getLogger(ROOT_LOGGER)
    result = SectionResult()
    log.info(">>> Starting: %s", name, stacklevel=3)
    try:
        yield result
    except BaseException:
        log.info("<<< Completed: %s [FAILED]", name, stacklevel=3)
        raise
    status = "FAILED" if result.failed else "SUCCESS"
    log.info("<<< Completed: %s [%s]", name, status, stacklevel=3)
