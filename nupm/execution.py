"""Subprocess execution with a bounded wait.

Credential providers (and any other external tool nupm launches) are run
through ``ProcessRunner`` so callers receive a plain ``ProcessResult`` and
tests can substitute a fake runner.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

DEFAULT_TIMEOUT = 60
TIMEOUT_EXIT_CODE = -1

_logging = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False


async def run_process_async(
    args: Sequence[str], timeout: float | None = DEFAULT_TIMEOUT
) -> ProcessResult:
    """Run a program asynchronously and capture its exit code and output.

    The child is killed when it does not finish within ``timeout`` seconds.
    Launch failures (missing or non-executable file) are reported as a
    result with a non-zero exit code rather than raised.
    """
    process = None
    try:
        _logging.debug(f"Running: {' '.join(args)}")
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            _ = await process.wait()
            _logging.error(f"Process timed out after {timeout} seconds: {args[0]}")
            return ProcessResult(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr=f"Process timed out after {timeout} seconds",
                timed_out=True,
            )

        return ProcessResult(
            exit_code=process.returncode if process.returncode is not None else 1,
            stdout=stdout.decode(errors="replace").strip(),
            stderr=stderr.decode(errors="replace").strip(),
        )
    except OSError as e:
        _logging.error(f"Process launch failed: {type(e).__name__}: {e} | Program: {args[0]}")
        return ProcessResult(exit_code=TIMEOUT_EXIT_CODE, stdout="", stderr=str(e))
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()


class ProcessRunner:
    """Synchronous facade over ``run_process_async``."""

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: Sequence[str], timeout: float | None = None) -> ProcessResult:
        return asyncio.run(
            run_process_async(list(args), timeout=timeout if timeout is not None else self.timeout)
        )


__all__ = [
    "DEFAULT_TIMEOUT",
    "TIMEOUT_EXIT_CODE",
    "ProcessResult",
    "ProcessRunner",
    "run_process_async",
]
