"""py-spell — launch child processes and collect what they produce.

Re-exports public symbols so callers can write::

    from py_spell import Spell, Stdio
"""

from py_spell.child import Child
from py_spell.env import Environment, EnvVar
from py_spell.handle import Handle, HandleError, NullDevice, PipePair
from py_spell.logging import LogEntry, Logger, LogLevel
from py_spell.signals import (
    child_termination_ignored,
    ignore_child_termination,
    restore_child_termination,
)
from py_spell.spell import Spell
from py_spell.status import ExitStatus, Output
from py_spell.stdio import Stdio
from py_spell.tokenizer import split_command_line

__all__ = [
    "Child",
    "EnvVar",
    "Environment",
    "ExitStatus",
    "Handle",
    "HandleError",
    "LogEntry",
    "LogLevel",
    "Logger",
    "NullDevice",
    "Output",
    "PipePair",
    "Spell",
    "Stdio",
    "child_termination_ignored",
    "ignore_child_termination",
    "restore_child_termination",
    "split_command_line",
]
