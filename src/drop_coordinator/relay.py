"""
ICQ relay invoker.

Runs the external interchain-query relayer for a set of pending query ids.
A relayer failure is never fatal to the coordinator: it is logged and
reported through the return value, and the next check cycle retries
naturally by rediscovering the same ids.
"""

import asyncio
import logging
import shlex
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and captured output of a finished command."""
    returncode: int
    stdout: str
    stderr: str


class CommandExecutor(Protocol):
    """Runs a command given as an argument list."""

    async def execute(self, args: Sequence[str], timeout: float) -> CommandResult:
        ...


class SubprocessExecutor:
    """Executes commands as child processes without a shell."""

    async def execute(self, args: Sequence[str], timeout: float) -> CommandResult:
        """
        Run ``args`` and capture its output.

        The child never outlives this call: on timeout or cancellation it
        is killed and reaped before the exception propagates.

        Raises:
            OSError: If the process cannot be spawned
            asyncio.TimeoutError: If it runs longer than ``timeout``
        """
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        finally:
            if process.returncode is None:
                await self._kill(process)
        return CommandResult(
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        # Shielded so a second cancellation cannot leave the child unreaped
        await asyncio.shield(process.wait())
        logger.warning(f"Killed ICQ relayer process {process.pid}")


class IcqRelayInvoker:
    """Builds and runs ``<relayer> -q <id1> -q <id2> ...``."""

    def __init__(
        self,
        command_template: str,
        executor: CommandExecutor | None = None,
        timeout: float = 300,
    ):
        """
        Args:
            command_template: Relayer command, may carry its own arguments
            executor: Command executor, a SubprocessExecutor by default
            timeout: Seconds a single relayer run may take
        """
        self.command = shlex.split(command_template)
        self.executor = executor or SubprocessExecutor()
        self.timeout = timeout

    def build_command(self, query_ids: Iterable[str]) -> list[str]:
        args = list(self.command)
        for query_id in query_ids:
            args.extend(["-q", str(query_id)])
        return args

    async def relay(self, query_ids: Sequence[str]) -> bool:
        """
        Run the relayer for ``query_ids``.

        Never raises; failures are logged.

        Returns:
            True if the relayer exited with status zero
        """
        ids = [str(query_id) for query_id in query_ids]
        if not ids:
            logger.debug("No query ids to relay")
            return False

        args = self.build_command(ids)
        logger.info(f"Running ICQ relayer for query ids: {', '.join(ids)}")

        try:
            result = await self.executor.execute(args, self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Error running query relayer: timed out after {self.timeout}s")
            return False
        except OSError as e:
            logger.error(f"Error running query relayer: {e}")
            return False
        except Exception as e:
            logger.error(f"Error running query relayer: {e}", exc_info=True)
            return False

        if result.stdout:
            logger.debug(f"stdout: {result.stdout}")
        if result.returncode != 0:
            logger.error(
                f"Error running query relayer: exit code {result.returncode}"
                + (f": {result.stderr.strip()}" if result.stderr.strip() else "")
            )
            return False

        logger.info(f"ICQ relayer finished for {len(ids)} query ids")
        return True
