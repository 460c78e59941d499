from __future__ import annotations

import asyncio
import functools
import logging

import pexpect

from ptyscribe.config import SurfaceConfig
from ptyscribe.interpreter import SessionInterpreter
from ptyscribe.log_setup import TRACE

logger = logging.getLogger(__name__)

READ_SIZE = 4096


class PtyBridge:
    """Connect one pexpect-managed PTY to a :class:`SessionInterpreter`.

    Output is read chunk by chunk and fed to the interpreter in arrival
    order; :meth:`write` is the session writer the interpreter injects
    commands through. Blocking pexpect calls run on the default executor.
    """

    def __init__(self, process: pexpect.spawn) -> None:
        """Wrap an already spawned process.

        Args:
            process: A ``pexpect.spawn`` created with ``encoding="utf-8"``.
        """
        self._process = process
        self._eof: bool = False
        self._closing: asyncio.Future | None = None

    @classmethod
    def spawn(
        cls, command: str, args: list[str] | None = None, surface: SurfaceConfig | None = None,
    ) -> PtyBridge:
        """Start *command* in a PTY sized to match the display surface."""
        surface = surface or SurfaceConfig()
        logger.debug("Spawning %s %s (%dx%d)", command, args or [], surface.cols, surface.rows)
        process = pexpect.spawn(
            command,
            args or [],
            encoding="utf-8",
            codec_errors="replace",
            dimensions=(surface.rows, surface.cols),
            timeout=5,
            maxread=READ_SIZE,
        )
        return cls(process)

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_alive(self) -> bool:
        return not self._eof and self._process.isalive()

    async def write(self, text: str) -> None:
        """Write injected input into the session.

        Raises:
            BrokenPipeError: If the session process has exited, so the
                caller sees the injection fail instead of losing it.
        """
        if not self._process.isalive():
            raise BrokenPipeError(f"Session process {self._process.pid} has exited")
        logger.log(TRACE, "PTY write pid=%s: %r", self._process.pid, text[:200])
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._process.send, text)

    def read_chunks(self) -> list[str]:
        """Return every chunk the PTY has ready, without blocking.

        End of file marks the bridge as finished. A read error is logged
        and ends the session the same way.
        """
        chunks: list[str] = []
        while not self._eof:
            try:
                chunk = self._process.read_nonblocking(size=READ_SIZE, timeout=0)
            except pexpect.TIMEOUT:
                break
            except pexpect.EOF:
                logger.debug("PTY pid=%s reached EOF", self._process.pid)
                self._eof = True
            except OSError as exc:
                logger.warning("PTY pid=%s read failed, closing: %s", self._process.pid, exc)
                self._eof = True
            else:
                logger.log(TRACE, "PTY read chunk len=%d", len(chunk))
                chunks.append(chunk)
        return chunks

    async def pump(self, interpreter: SessionInterpreter) -> int:
        """Feed ready chunks to *interpreter*, flushing the display when quiet.

        Returns:
            The number of chunks fed.
        """
        chunks = self.read_chunks()
        for chunk in chunks:
            await interpreter.feed(chunk)
        if not chunks:
            interpreter.flush_display()
        return len(chunks)

    async def run(self, interpreter: SessionInterpreter, poll_interval: float = 0.05) -> int | None:
        """Pump output until the process exits, then report the exit.

        Returns:
            The exit status from :meth:`exit_status`.
        """
        logger.debug("PTY bridge running for session %s", interpreter.session_id)
        while self.is_alive():
            if not await self.pump(interpreter):
                await asyncio.sleep(poll_interval)
        await self.pump(interpreter)
        await self.close()
        status = self.exit_status()
        interpreter.on_exit(status)
        return status

    async def close(self) -> None:
        """Close the PTY, killing the session process if it is still running."""
        self._eof = True
        if self._closing is None:
            if self._process.isalive():
                logger.debug("Terminating session process pid=%s", self._process.pid)
            loop = asyncio.get_running_loop()
            self._closing = loop.run_in_executor(
                None, functools.partial(self._process.close, force=True),
            )
        await self._closing

    def exit_status(self) -> int | None:
        """Shell-style exit status: the exit code, or 128 + signal when killed.

        None until the process has been reaped by :meth:`close`.
        """
        if self._process.exitstatus is not None:
            return self._process.exitstatus
        if self._process.signalstatus is not None:
            return 128 + self._process.signalstatus
        return None
