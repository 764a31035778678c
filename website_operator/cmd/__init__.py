"""
This module holds all of the command classes for the website operator's main
entrypoint
"""

# Local
from .base import CmdBase
from .reconcile_cmd import ReconcileCmd
from .run_operator_cmd import RunOperatorCmd
