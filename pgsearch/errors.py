"""
Error taxonomy for the pgsearch pipeline.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base class for every fatal pipeline error."""


class MalformedInputError(PipelineError):
    """Raised when transcript models or the spectra definition cannot be parsed."""


class ExternalToolError(PipelineError):
    """Raised when an external tool exits with a non-zero status.

    Parameters
    ----------
    cmd : List[str]
        Command that was run
    returncode : int, optional
        Exit status of the tool, or None if it could not be started
    stderr : str
        Captured standard error of the tool
    """

    def __init__(self, cmd: List[str], returncode: Optional[int], stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr or ""
        if returncode is None:
            message = f"Could not run {cmd[0]}: {self.stderr.strip()}"
        else:
            message = f"{cmd[0]} exited with status {returncode}"
            if self.stderr.strip():
                message += f": {self.stderr.strip()}"
        super().__init__(message)


class CorrespondenceError(PipelineError):
    """Raised when a key assumed unique is duplicated, or a join key has no match."""


class MissingGroupError(PipelineError):
    """Raised when an analytical set lacks either its identifications or its validation."""


class TaskCancelled(PipelineError):
    """Raised inside a branch that stopped because a sibling branch failed."""
