"""Subprocess helper shared by the command-line media adapters."""

from __future__ import annotations

import asyncio

import structlog

from ragcast.utils.errors import MediaProcessingError, ToolUnavailableError

logger = structlog.get_logger(logger_name=__name__)

# Tail of stderr kept in error messages; ffmpeg in particular is verbose.
_STDERR_TAIL = 500


async def run_tool(binary: str, args: list[str], provider_name: str) -> str:
    """Run *binary* with *args* and return its decoded stderr.

    Raises
    ------
    ToolUnavailableError
        If the binary cannot be launched (not installed or not on PATH).
    MediaProcessingError
        If the process exits with a non-zero status.  The message includes
        the tail of stderr so callers can match on tool-specific signals.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ToolUnavailableError(
            message=f"{binary} is not installed",
            provider_name=provider_name,
        ) from exc

    try:
        _, stderr_bytes = await proc.communicate()
    except asyncio.CancelledError:
        # Timeouts and shutdown cancel us; the child must not outlive the job.
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
            logger.warning("media_tool_killed", tool=binary, pid=proc.pid)
        raise
    stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

    if proc.returncode != 0:
        logger.warning(
            "media_tool_failed",
            tool=binary,
            returncode=proc.returncode,
            stderr=stderr[-_STDERR_TAIL:],
        )
        raise MediaProcessingError(
            message=f"{binary} exited with code {proc.returncode}: {stderr[-_STDERR_TAIL:]}",
            provider_name=provider_name,
        )
    return stderr
