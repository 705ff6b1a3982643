"""
Process runner: executes one external program and captures its result.

The runner knows nothing about Terraform, Pulumi or any other tool. It
takes an executable and an argument vector, runs it without a shell,
and hands back a ToolResult. Platform errors never escape: a missing or
unspawnable executable becomes BinaryNotFound, an overrun becomes
ProcessTimeout.

Usage:
    runner = ProcessRunner(timeout=600)
    result = runner.run("tofu", ["plan", "-var=region=eu-west-1"], cwd="/srv/infra")
    if not result.success:
        print(result.exit_code, result.error)
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from iac_tools.errors import BinaryNotFound, ProcessTimeout
from iac_tools.schema import ToolResult, redact

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0

_USE_DEFAULT = object()


class ProcessRunner:
    """
    Runs external binaries with an explicit argument vector.

    Each call owns its process and pipes; both are released before run()
    returns, whatever the outcome. Calls share no state, so one runner
    can serve any number of concurrent dispatches.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT):
        """
        Args:
            timeout: Default bound in seconds for each process.
                     None or 0 disables the bound.
        """
        self.timeout = timeout or None

    def run(
        self,
        binary: str,
        args: Sequence[str],
        cwd: str | Path | None = None,
        stdin_text: str | None = None,
        timeout=_USE_DEFAULT,
        secrets: Sequence[str] = (),
    ) -> ToolResult:
        """
        Run `binary` with `args` and wait for it to finish.

        Args:
            binary: Executable name (resolved on PATH) or absolute path
            args: Argument vector; each item is passed as one argument
            cwd: Working directory for the process
            stdin_text: Text written to the process stdin. When None the
                        process gets an empty stdin so it can never block
                        on an interactive prompt.
            timeout: Per-call override of the runner's default timeout
            secrets: Values masked as *** in logs and in the returned result

        Raises:
            BinaryNotFound: the executable is missing or cannot be spawned
            ProcessTimeout: the process outlived the timeout and was killed
        """
        argv = [binary, *args]
        for item in argv:
            if not isinstance(item, str):
                raise TypeError(f"Process arguments must be strings, got {item!r}")

        if timeout is _USE_DEFAULT:
            timeout = self.timeout
        timeout = timeout or None
        secrets = [s for s in secrets if s]

        logger.debug(f"Running: {redact(' '.join(argv), secrets)} (cwd={cwd or '.'})")
        try:
            completed = subprocess.run(
                argv,
                input=stdin_text.encode("utf-8") if stdin_text is not None else None,
                stdin=subprocess.DEVNULL if stdin_text is None else None,
                capture_output=True,
                cwd=str(cwd) if cwd else None,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"{binary} timed out after {timeout}s")
            raise ProcessTimeout(timeout, binary)
        except OSError as e:
            raise BinaryNotFound(binary, e.strerror or str(e)) from e

        result = ToolResult(
            success=completed.returncode == 0,
            output=completed.stdout.decode("utf-8", errors="replace"),
            error=completed.stderr.decode("utf-8", errors="replace"),
            exit_code=completed.returncode,
        )
        logger.debug(f"{binary} exited with {completed.returncode}")
        return result.redacted(secrets)
