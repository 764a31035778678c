"""
This is the main entrypoint command for running the operator
"""
# Standard
import argparse
import signal

# First Party
import alog

# Local
from .. import config
from ..constants import WEBSITE_API_VERSION, WEBSITE_KIND
from ..deploy_manager import DeployManagerBase
from ..log_format import configure_logging
from ..managed_object import ManagedObject
from ..reconcile import WebsiteReconciler
from ..watch_manager import WebsiteWatchManager
from .base import CmdBase

log = alog.use_channel("MAIN")


class RunOperatorCmd(CmdBase):
    __doc__ = __doc__

    COMMAND_NAME = "run"

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(self.COMMAND_NAME, help=__doc__)
        self.add_dry_run_args(parser)
        return parser

    def cmd(self, args: argparse.Namespace) -> int:
        deploy_manager = self.make_deploy_manager(args)
        if config.dry_run:
            return self._run_once(deploy_manager)

        watch_manager = WebsiteWatchManager(deploy_manager)

        # Register the signal handler to stop the watches
        def do_stop(*_, **__):  # pragma: no cover
            watch_manager.stop()

        signal.signal(signal.SIGINT, do_stop)

        log.info("Starting Watches")
        if not watch_manager.watch():
            return 1
        watch_manager.wait()

        # All done!
        log.info("SHUTTING DOWN")
        return 0

    ## Impl ##

    @staticmethod
    def _run_once(deploy_manager: DeployManagerBase) -> int:
        """Reconcile every Website in the cluster once on this thread

        Returns:
            exit_code:  int
                0 if every reconcile succeeded, 1 otherwise
        """
        reconciler = WebsiteReconciler(deploy_manager)
        websites = deploy_manager.filter_objects_current_state(
            kind=WEBSITE_KIND, api_version=WEBSITE_API_VERSION
        )
        log.info("Reconciling %d %s(s)", len(websites), WEBSITE_KIND)

        failed = []
        for website in websites:
            identity = ManagedObject(website).identity
            reconciliation_id = reconciler.generate_id()
            configure_logging(identity, reconciliation_id)
            result = reconciler.reconcile(
                identity.namespace,
                identity.name,
                reconciliation_id=reconciliation_id,
            )
            log.info("[%s] -> %s", identity, result.state.value)
            if not result.done:
                failed.append(result)

        for result in failed:
            log.error("Reconcile of [%s] failed: %s", result.identity, result.exception)
        return 1 if failed else 0
