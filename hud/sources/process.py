"""Running external query tools without blocking the event loop."""

import asyncio
import logging
import subprocess

from ..errors import SourceError

logger = logging.getLogger(__name__)


async def run_tool(
    args: list[str],
    timeout: float,
    source: str,
    cwd: str | None = None,
) -> subprocess.CompletedProcess:
    """Run a CLI tool in a worker thread, bounded by timeout.

    Raises:
        SourceError: if the tool is missing, cannot be started or times out.
            A non-zero exit status is returned to the caller, not raised.
    """
    logger.debug("$ %s", " ".join(args))
    try:
        return await asyncio.to_thread(
            subprocess.run,
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        raise SourceError(f"{' '.join(args[:3])} timed out after {timeout:g}s", source=source)
    except (subprocess.SubprocessError, OSError) as e:
        raise SourceError(f"{args[0]} could not be run: {e}", source=source)
