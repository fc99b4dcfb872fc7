import logging
import sys
import os
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None):
    """
    Configure logging with Rich for console output
    and standard formatting for file output.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    if os.environ.get("NO_RICH_LOGGING"):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers = [handler]
    else:
        handlers = [RichHandler(rich_tracebacks=True, markup=False)]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # Suppress noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str):
    return logging.getLogger(name)
