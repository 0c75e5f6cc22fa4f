import subprocess
from collections.abc import Sequence

from htr_worker.logging.logger import Log
from htr_worker.tools.exceptions import ExternalToolError


def run_tool(args: Sequence[str]) -> None:
    """Run an external command to completion, capturing its error stream.

    Raises:
        ExternalToolError: if the command cannot be started or exits nonzero.
    """
    command = args[0]
    Log.debug(f"Running {' '.join(args)}")
    try:
        result = subprocess.run(
            list(args),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ExternalToolError(command, None, str(exc)) from exc
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        Log.error(f"{command} exited with code {result.returncode}")
        raise ExternalToolError(command, result.returncode, stderr)
