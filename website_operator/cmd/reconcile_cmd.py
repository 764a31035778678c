"""
Run a single reconciliation of one Website
"""
# Standard
import argparse

# First Party
import alog

# Local
from ..log_format import configure_logging
from ..managed_object import ResourceIdentity
from ..reconcile import WebsiteReconciler
from .base import CmdBase

log = alog.use_channel("MAIN")


class ReconcileCmd(CmdBase):
    __doc__ = __doc__

    COMMAND_NAME = "reconcile"

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(self.COMMAND_NAME, help=__doc__)
        runtime_args = parser.add_argument_group("Reconcile Configuration")
        runtime_args.add_argument(
            "--namespace",
            "-n",
            required=True,
            help="Namespace of the Website to reconcile",
        )
        runtime_args.add_argument(
            "--name",
            required=True,
            help="Name of the Website to reconcile",
        )
        self.add_dry_run_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace) -> int:
        deploy_manager = self.make_deploy_manager(args)
        reconciler = WebsiteReconciler(deploy_manager)

        reconciliation_id = reconciler.generate_id()
        configure_logging(
            ResourceIdentity(namespace=args.namespace, name=args.name),
            reconciliation_id,
        )
        result = reconciler.reconcile(
            args.namespace, args.name, reconciliation_id=reconciliation_id
        )
        if result.done:
            log.info("Reconcile of [%s] succeeded", result.identity)
            return 0
        log.error("Reconcile of [%s] failed: %s", result.identity, result.exception)
        return 1
