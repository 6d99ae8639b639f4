"""Subprocess transport.

Launches the server as a child process and exposes its stdio as raw
bytes:
- stdin: written by the client, one JSON line per message
- stdout: read in chunks and handed to a data callback
- stderr: drained so the child never blocks on a full pipe, never parsed
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable, Mapping, Sequence

from .errors import SpawnError, TransportError

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]
FailureCallback = Callable[[TransportError], None]

# Grace period between closing stdin and killing the process
TERMINATE_GRACE = 0.5

READ_CHUNK_SIZE = 64 * 1024


class ProcessTransport:
    """Owns one child process and its three standard streams.

    The failure callback fires at most once, when stdout reaches EOF or
    reading fails, and never after terminate() has been requested.
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> None:
        self.command = command
        self.args = list(args)
        self.env = dict(env or {})
        self.cwd = cwd
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._on_failure: FailureCallback | None = None
        self._terminating = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self, on_data: DataCallback, on_failure: FailureCallback) -> None:
        """Launch the process and start the reader tasks.

        Raises:
            SpawnError: If the executable cannot be launched
        """
        if self._process is not None:
            raise RuntimeError("Transport already started")

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env={**os.environ, **self.env},
            )
        except (OSError, ValueError) as e:
            raise SpawnError(self.command, e) from e

        self._on_failure = on_failure
        self._reader_task = asyncio.create_task(self._read_stdout(on_data))
        self._stderr_task = asyncio.create_task(self._drain_stderr())

        logger.info(f"Launched server: {self._describe()} (pid={self._process.pid})")

    def write(self, data: bytes) -> None:
        """Write bytes to the child's stdin.

        A no-op once the transport is terminating or the pipe is gone;
        pending requests are failed through the failure path instead.

        The write is buffered and never drained, so a child that stops
        reading stdin lets the buffer grow without bound. Callers rely on
        request timeouts rather than back-pressure.
        """
        if self._terminating or self._process is None or self._process.stdin is None:
            logger.debug("Dropping write on closed transport")
            return
        stdin = self._process.stdin
        if stdin.is_closing():
            logger.debug("Dropping write on closed stdin")
            return
        try:
            stdin.write(data)
        except (BrokenPipeError, ConnectionResetError, RuntimeError) as e:
            logger.debug(f"Write to server stdin failed: {e}")

    async def terminate(self, grace: float = TERMINATE_GRACE) -> None:
        """Close stdin, wait up to grace seconds, then kill. Never raises."""
        process = self._process
        if process is None or self._terminating:
            return
        self._terminating = True

        try:
            # Not waiting for stdin to flush: a child that stopped reading
            # would keep it open until the kill below
            if process.stdin is not None:
                process.stdin.close()

            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
            logger.info(f"Server terminated (pid={process.pid}, returncode={process.returncode})")
        except Exception as e:
            logger.debug(f"Error while terminating server (pid={process.pid}): {e}")
        finally:
            await self._cancel_tasks()

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._reader_task, self._stderr_task):
            if task is None or task is current:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
        self._reader_task = None
        self._stderr_task = None

    async def _read_stdout(self, on_data: DataCallback) -> None:
        """Feed stdout chunks to on_data until EOF."""
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        try:
            while True:
                chunk = await stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                on_data(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error reading server stdout: {e}")
            self._fail(TransportError(f"Transport error: {e}"))
            return

        self._fail(TransportError("Server exited"))

    async def _drain_stderr(self) -> None:
        """Read and discard stderr output."""
        assert self._process is not None and self._process.stderr is not None
        stderr = self._process.stderr
        with contextlib.suppress(Exception):
            while True:
                line = await stderr.readline()
                if not line:
                    break
                logger.debug(f"[server stderr] {line.decode('utf-8', 'replace').rstrip()}")

    def _fail(self, error: TransportError) -> None:
        callback, self._on_failure = self._on_failure, None
        if callback is None or self._terminating:
            return
        logger.info(f"Server transport failed: {error} ({self._describe()})")
        callback(error)

    def _describe(self) -> str:
        return " ".join([self.command, *self.args])
