"""
CGI Process Invoker Service

Spawns the CGI executable once per request, feeds it the request body and
captures its stdout. The child never outlives the request task.
"""

import asyncio
import logging
import os
import subprocess
from typing import Dict, Optional

from cgibridge.gateway.config import GatewayConfig
from cgibridge.gateway.core.exceptions import CgiTimeoutError, IoError, SpawnError
from cgibridge.gateway.models.result import ProcessOutcome

logger = logging.getLogger("gateway.process_invoker")


class ProcessInvoker:
    def __init__(
        self,
        executable: str,
        working_dir: str,
        uid: Optional[int] = None,
        gid: Optional[int] = None,
        debug: bool = False,
        timeout: Optional[float] = None,
        inherit_env: bool = True,
    ):
        """
        Args:
            executable: CGI program path
            working_dir: working directory of the child
            uid: user id to run as (unchanged when None)
            gid: group id to run as (unchanged when None)
            debug: let the child's stderr through
            timeout: kill the child after this many seconds (no limit when None)
            inherit_env: start from the gateway's own environment
        """
        self.executable = executable
        self.working_dir = working_dir
        self.uid = uid
        self.gid = gid
        self.debug = debug
        self.timeout = timeout
        self.inherit_env = inherit_env

    @classmethod
    def from_config(cls, gateway_config: GatewayConfig) -> "ProcessInvoker":
        return cls(
            executable=gateway_config.CGI_EXECUTABLE,
            working_dir=gateway_config.CGI_WORKING_DIR,
            uid=gateway_config.RUN_AS_UID,
            gid=gateway_config.RUN_AS_GID,
            debug=gateway_config.DEBUG,
            timeout=gateway_config.CGI_TIMEOUT_SECONDS,
            inherit_env=gateway_config.CGI_INHERIT_ENV,
        )

    def _child_environment(self, environment: Dict[str, str]) -> Dict[str, str]:
        env = os.environ.copy() if self.inherit_env else {}
        env.update(environment)
        return env

    async def _spawn(self, environment: Dict[str, str]) -> asyncio.subprocess.Process:
        kwargs = {}
        if self.uid is not None:
            kwargs["user"] = self.uid
        if self.gid is not None:
            kwargs["group"] = self.gid

        try:
            return await asyncio.create_subprocess_exec(
                self.executable,
                cwd=self.working_dir,
                env=self._child_environment(environment),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=None if self.debug else asyncio.subprocess.DEVNULL,
                **kwargs,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.warning(
                f"Failed to spawn CGI program '{self.executable}'",
                extra={
                    "executable": self.executable,
                    "working_dir": self.working_dir,
                    "uid": self.uid,
                    "gid": self.gid,
                    "error_type": type(e).__name__,
                    "error_detail": str(e),
                },
            )
            raise SpawnError(self.executable, e) from e

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()

    async def invoke(
        self, environment: Dict[str, str], body: Optional[bytes] = None
    ) -> ProcessOutcome:
        """
        Run the CGI program once.

        Args:
            environment: CGI variables for the child
            body: request body written to stdin (stdin is closed empty when None)

        Returns:
            ProcessOutcome with the complete stdout

        Raises:
            SpawnError: the program could not be launched
            IoError: feeding stdin or reading stdout failed
            CgiTimeoutError: the program outlived the timeout
        """
        process = await self._spawn(environment)
        logger.debug(
            f"Spawned {self.executable}",
            extra={"pid": process.pid, "body_bytes": len(body) if body else 0},
        )

        # communicate() writes the body, closes stdin and drains stdout concurrently.
        # An empty input still closes stdin, so a body-less request sees EOF at once.
        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(input=body or b""), self.timeout
            )
        except asyncio.TimeoutError as e:
            await self._terminate(process)
            raise CgiTimeoutError(self.executable, self.timeout) from e
        except asyncio.CancelledError:
            # Client went away: do not leave the child running.
            await self._terminate(process)
            raise
        except OSError as e:
            await self._terminate(process)
            raise IoError(self.executable, e) from e

        return ProcessOutcome(returncode=process.returncode, stdout=stdout or b"")
