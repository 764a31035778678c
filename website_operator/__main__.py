#!/usr/bin/env python
"""
The main module provides the executable entrypoint for the website operator
"""

# Standard
from typing import List, Optional
import argparse
import sys

# First Party
import alog

# Local
from .cmd import ReconcileCmd, RunOperatorCmd
from .config import library_config
from .log_format import configure_logging

log = alog.use_channel("MAIN")

# Command used when the first argument does not name one
DEFAULT_COMMAND = RunOperatorCmd.COMMAND_NAME

## Helpers #####################################################################


def add_config_args(parser: argparse.ArgumentParser):
    """Add a --<key> override for every operator setting. Bool settings become
    flags and every other setting is parsed as the type of its default.
    """
    group = parser.add_argument_group("Operator Configuration")
    for key, default in library_config.items():
        kwargs = {"default": default, "help": f"Override the {key} setting"}
        if isinstance(default, bool):
            kwargs["action"] = "store_true"
        elif default is not None:
            kwargs["type"] = type(default)
        group.add_argument(f"--{key}", **kwargs)


def apply_config_args(args: argparse.Namespace):
    """Write the parsed overrides back into the operator settings"""
    for key in list(library_config.keys()):
        library_config[key] = getattr(args, key)


## Main ########################################################################


def main(argv: Optional[List[str]] = None) -> int:
    """Parse the command line, apply the setting overrides and run the chosen
    command

    Returns:
        exit_code:  int
            The exit code of the command
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    for cmd in [RunOperatorCmd(), ReconcileCmd()]:
        cmd_parser = cmd.add_subparser(subparsers)
        cmd_parser.set_defaults(func=cmd.cmd)
        add_config_args(cmd_parser)

    if not argv or argv[0] not in subparsers.choices:
        argv = [DEFAULT_COMMAND] + argv
    args = parser.parse_args(argv)

    apply_config_args(args)
    configure_logging()
    log.debug2("Running %s with config: %s", args.command, dict(library_config))
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
