"""Local command execution session."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from ..errors import DependencyMissing, ExternalCommandFailed

logger = logging.getLogger(__name__)


@dataclass
class LocalCommandResult:
    """Result of executing a local command."""
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class LocalSession:
    """
    Runs external commands on this host.

    Every call blocks until the command exits. Commands are passed as argument
    lists and never go through a shell.
    """

    def __init__(self, working_dir: Optional[str] = None) -> None:
        """
        Args:
            working_dir: Default working directory. Defaults to the home directory.
        """
        self.working_dir = working_dir or os.path.expanduser("~")

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
        interactive: bool = False,
        timeout: Optional[int] = None,
    ) -> LocalCommandResult:
        """
        Execute a command.

        Args:
            argv: Program and arguments
            cwd: Working directory for this call
            input_text: Data written to the command's stdin
            interactive: Inherit the terminal so the command can prompt the operator
            timeout: Seconds before the command is killed (None waits forever)

        Returns:
            LocalCommandResult; output is empty for interactive commands
        """
        command = " ".join(argv)
        logger.debug("$ %s", command)
        try:
            if interactive:
                completed = subprocess.run(
                    list(argv),
                    cwd=cwd or self.working_dir,
                    timeout=timeout,
                )
                return LocalCommandResult(command, "", "", completed.returncode)

            completed = subprocess.run(
                list(argv),
                input=input_text,
                capture_output=True,
                text=True,
                cwd=cwd or self.working_dir,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            raise DependencyMissing(f"Command not found: {argv[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ExternalCommandFailed(f"Command timed out after {timeout} seconds: {command}") from exc

        return LocalCommandResult(
            command=command,
            stdout=completed.stdout.strip(),
            stderr=completed.stderr.strip(),
            exit_status=completed.returncode,
        )

    def check(self, argv: Sequence[str], description: str, **kwargs) -> LocalCommandResult:
        """Run a command and raise ExternalCommandFailed on a non-zero exit."""
        result = self.run(argv, **kwargs)
        if not result.ok:
            detail = f": {result.stderr}" if result.stderr else ""
            raise ExternalCommandFailed(f"{description} (exit {result.exit_status}){detail}")
        return result
