"""
Command execution and process management utilities.

This module runs external commands on behalf of probes. Commands are bounded
by a timeout and by the agent's cancellation event; when either fires, the
whole process tree of the command is terminated with psutil.
"""

import logging
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import psutil

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while a command is running.
POLL_INTERVAL = 0.1
# Seconds a terminated process tree gets before it is killed.
TERMINATION_GRACE_PERIOD = 2.0


@dataclass
class CommandResult:
    """
    Outcome of one command execution.

    Attributes:
        returncode: Exit status (negative when killed by a signal)
        stdout: Captured standard output
        stderr: Captured standard error
        elapsed: Wall-clock seconds the command ran
        timed_out: The command was terminated because it exceeded its timeout
        cancelled: The command was terminated because cancellation was requested
    """

    returncode: int
    stdout: str
    stderr: str
    elapsed: float
    timed_out: bool = False
    cancelled: bool = False

    @property
    def interrupted(self) -> bool:
        return self.timed_out or self.cancelled


def run_command(
    command: Union[str, Sequence[str]],
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
    shell: bool = False,
) -> CommandResult:
    """Execute a command and capture its output, honouring timeout and cancellation.

    Args:
        command: Command line string (shell=True) or argument vector.
        timeout: Seconds after which the command's process tree is terminated.
        cancel_event: Event whose setting terminates the command early.
        shell: Whether to run the command through the shell.

    Returns:
        CommandResult describing the execution.

    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    if isinstance(command, str) and not shell:
        command = shlex.split(command)
    logger.debug(f"Executing command: {command!r}")

    started = time.monotonic()
    deadline = started + timeout
    process = subprocess.Popen(
        command,
        shell=shell,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        text=True,
        encoding="utf-8",
        errors="replace",
        start_new_session=True,
    )

    timed_out = False
    cancelled = False
    while True:
        try:
            stdout, stderr = process.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
            elif time.monotonic() >= deadline:
                timed_out = True
            else:
                continue
            reason = "cancelled" if cancelled else f"timed out after {timeout}s"
            logger.debug(f"Command {command!r} {reason}, terminating PID {process.pid}")
            terminate_process_tree(process.pid)
            stdout, stderr = process.communicate()
            break

    return CommandResult(
        returncode=process.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
        elapsed=time.monotonic() - started,
        timed_out=timed_out,
        cancelled=cancelled,
    )


def terminate_process_tree(pid: int, grace_period: float = TERMINATION_GRACE_PERIOD) -> None:
    """
    Terminate a process and all its descendants.

    SIGTERM is sent first; anything still alive after ``grace_period`` seconds
    is killed.
    """
    try:
        parent = psutil.Process(pid)
        processes: List[psutil.Process] = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        return

    for process in processes:
        try:
            process.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGTERM to PID {process.pid}")

    _, still_alive = psutil.wait_procs(processes, timeout=grace_period)
    for process in still_alive:
        try:
            process.kill()
            logger.debug(f"Killed PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied killing PID {process.pid}")
