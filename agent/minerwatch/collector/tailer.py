import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator, Optional, TextIO

from ..errors import TailAttachError, TailReadError
from ..utils.logging import get_logger

logger = get_logger("log_tailer")


class LineSource(ABC):
    """Produces the lines a monitor consumes."""

    async def open(self):
        pass

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        pass

    def close(self):
        pass


class FileTailer(LineSource):
    """Follows a single file from its current end, like `tail -f`.

    Content written before open() is never replayed. A trailing line without
    its newline is held back until the rest of it arrives. Rotation and
    truncation are not detected.
    """

    def __init__(self, path: str, poll_interval: float = 0.5, encoding: str = "utf-8"):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self.encoding = encoding
        self._fd: Optional[TextIO] = None

    async def open(self):
        if self._fd:
            return

        try:
            self._fd = open(self.path, "r", encoding=self.encoding, errors="replace")
            self._fd.seek(0, os.SEEK_END)
        except OSError as e:
            self.close()
            raise TailAttachError(str(self.path), e.strerror or str(e)) from e

        logger.debug(f"Attached to {self.path} at offset {self._fd.tell()}")

    async def lines(self) -> AsyncIterator[str]:
        if not self._fd:
            await self.open()

        pending = ""
        while True:
            try:
                chunk = self._fd.readline()
            except (OSError, ValueError) as e:
                raise TailReadError(str(self.path), str(e)) from e

            if not chunk:
                # No new data, return control
                await asyncio.sleep(self.poll_interval)
                continue

            pending += chunk
            if pending.endswith("\n"):
                line, pending = pending.rstrip("\r\n"), ""
                yield line

    def close(self):
        if self._fd:
            self._fd.close()
            self._fd = None
