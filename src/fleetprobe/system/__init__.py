"""
System interaction utilities.

Command execution with timeout and cancellation support, and process-tree
termination.
"""

from .commands import CommandResult, run_command, terminate_process_tree

__all__ = [
    "CommandResult",
    "run_command",
    "terminate_process_tree",
]
