"""
Invocation of external command-line tools.
"""

import subprocess
import threading
from typing import List, Optional

from .errors import ExternalToolError, TaskCancelled

POLL_INTERVAL = 0.5
TERMINATE_GRACE = 10


def run_tool(cmd: List[str], description: str, cancel: Optional[threading.Event] = None) -> None:
    """Run an external tool to completion.

    Success is signalled only by a zero exit status; output is not parsed.

    Parameters
    ----------
    cmd : List[str]
        Command and arguments
    description : str
        Progress message printed before the tool starts
    cancel : threading.Event, optional
        Cancellation token; when set, the running process is terminated

    Raises
    ------
    ExternalToolError
        If the tool cannot be started or exits with a non-zero status
    TaskCancelled
        If the cancellation token was set before or during the run
    """

    if cancel is not None and cancel.is_set():
        raise TaskCancelled(description)

    print(f"{description}...")

    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    except OSError as e:
        raise ExternalToolError(cmd, None, str(e)) from e

    while True:
        try:
            _, stderr = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.is_set():
                _terminate(proc)
                raise TaskCancelled(description)

    if proc.returncode != 0:
        raise ExternalToolError(cmd, proc.returncode, stderr)


def _terminate(proc: subprocess.Popen) -> None:
    proc.terminate()
    try:
        proc.communicate(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
