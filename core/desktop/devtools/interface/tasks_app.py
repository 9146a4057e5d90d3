#!/usr/bin/env python3
"""
aipm.py: terminal task board with AI triage.

Thin facade: parses arguments and dispatches to the command modules.
Without a subcommand the interactive board starts.
"""

import sys
from typing import List, Optional

from core.desktop.devtools.interface import cli_commands
from core.desktop.devtools.interface.cli_parser import build_parser
from core.desktop.devtools.interface.tui_themes import DEFAULT_THEME, THEMES


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser(cli_commands, THEMES, DEFAULT_THEME)
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if not getattr(args, "command", None):
        args.theme = DEFAULT_THEME
        return cli_commands.cmd_tui(args)
    return args.func(args)


__all__ = ["main"]
