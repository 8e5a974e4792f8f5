import logging
import signal
import subprocess
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RunOutcome:
    succeeded: bool
    diagnostic: Optional[str] = None
    returncode: Optional[int] = None


def describe_returncode(returncode: int) -> str:
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"killed by signal {name}"
    return f"exited with code {returncode}"


class CommandRunner:
    """Run a command string through the shell and wait for it to finish.

    The child inherits stdout/stderr so its output shows up live.
    """

    def __init__(self, shell: Optional[str] = None) -> None:
        # None lets subprocess pick the platform shell (/bin/sh or cmd.exe)
        self.shell = shell

    def execute(self, command: str) -> RunOutcome:
        logging.debug(f"Running: {command}")
        try:
            proc = subprocess.Popen(command, shell=True, executable=self.shell)
        except OSError as e:
            return RunOutcome(False, f"failed to start: {e}")

        returncode = proc.wait()
        if returncode == 0:
            return RunOutcome(True, returncode=0)
        return RunOutcome(False, describe_returncode(returncode), returncode)
