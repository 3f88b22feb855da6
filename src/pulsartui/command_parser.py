"""Commands typed at the ':' prompt."""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CommandType(Enum):
    TENANT = "tenant"
    TOP = "top"
    REFRESH = "refresh"
    QUIT = "quit"
    HELP = "help"
    UNKNOWN = "unknown"


# Every spelling of a command -> (type, number of arguments it takes)
COMMANDS = {
    "tenant": (CommandType.TENANT, 1),
    "t": (CommandType.TENANT, 1),
    "top": (CommandType.TOP, 0),
    "refresh": (CommandType.REFRESH, 0),
    "r": (CommandType.REFRESH, 0),
    "quit": (CommandType.QUIT, 0),
    "q": (CommandType.QUIT, 0),
    "help": (CommandType.HELP, 0),
    "?": (CommandType.HELP, 0),
}

HELP_TEXT = """Commands:
:tenant <name> (or :t)  - Jump to a tenant's namespaces
:top                    - Back to the tenant list
:refresh (or :r)        - Reload the current view
:help (or :?)           - Show this help
:quit (or :q)           - Exit

Keys:
j/k or arrows - Move   Enter - Open   Esc/h - Back   r - Refresh
d - Delete subscription   s - Skip all messages   e - Seek back
y/n - Confirm/cancel   q - Quit"""


@dataclass
class ParsedCommand:
    command_type: CommandType
    args: List[str] = field(default_factory=list)
    error: Optional[str] = None


def _failed(error: str, args: Optional[List[str]] = None) -> ParsedCommand:
    return ParsedCommand(CommandType.UNKNOWN, args or [], error)


class CommandParser:
    def parse(self, input_text: str) -> ParsedCommand:
        text = input_text.strip()
        if not text:
            return _failed("Empty command")
        if not text.startswith(":"):
            return _failed("Commands must start with ':'")

        try:
            words = shlex.split(text[1:])
        except ValueError as e:
            return _failed(f"Invalid command syntax: {e}")
        if not words:
            return _failed("No command after ':'")

        name, args = words[0].lower(), words[1:]
        if name not in COMMANDS:
            return _failed(f"Unknown command: {name}", args)

        command_type, arity = COMMANDS[name]
        error = None
        if arity == 0 and args:
            error = f"{command_type.value} command does not accept arguments"
        elif arity == 1 and not args:
            error = f"{command_type.value} command requires a name argument"
        elif len(args) > arity:
            error = f"{command_type.value} command accepts only one argument"
        return ParsedCommand(command_type, args, error)

    def get_help_text(self) -> str:
        return HELP_TEXT
