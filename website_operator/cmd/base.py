"""
Base class for all website operator commands
"""

# Standard
from typing import List, Optional
import abc
import argparse
import os

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config
from ..constants import DEFAULT_NAMESPACE
from ..deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from ..exceptions import assert_config

log = alog.use_channel("MAIN")


class CmdBase(abc.ABC):
    __doc__ = __doc__

    @abc.abstractmethod
    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        """Add this command's argument parser subcommand

        Args:
            subparsers (argparse._SubParsersAction): The subparser section for
                the central main parser

        Returns:
            subparser (argparse.ArgumentParser): The configured parser for this
                command
        """

    @abc.abstractmethod
    def cmd(self, args: argparse.Namespace) -> int:
        """Execute the command with the parsed arguments

        Args:
            args (argparse.Namespace): The parsed command line arguments

        Returns:
            exit_code (int): The process exit code
        """

    ## Shared Helpers ##

    @staticmethod
    def add_dry_run_args(parser: argparse.ArgumentParser):
        """Add the args used to populate the in-memory cluster"""
        dry_run_args = parser.add_argument_group("Dry Run Configuration")
        dry_run_args.add_argument(
            "--cr",
            "-c",
            default=None,
            help="(dry run) A Website manifest yaml to apply directly",
        )
        dry_run_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="(dry run) Path to a directory of yaml files that should exist in the cluster",
        )

    @classmethod
    def make_deploy_manager(cls, args: argparse.Namespace) -> DeployManagerBase:
        """Build the deploy manager for the configured mode. In dry run mode,
        the in-memory cluster is populated from --resource_dir and --cr.
        """
        assert_config(
            args.cr is None or (config.dry_run and os.path.isfile(args.cr)),
            "Can only specify --cr with dry run and it must point to a valid file",
        )
        assert_config(
            args.resource_dir is None
            or (config.dry_run and os.path.isdir(args.resource_dir)),
            "Can only specify --resource_dir with dry run and it must point to a valid directory",
        )

        if not config.dry_run:
            log.info("Running against the live cluster")
            return OpenshiftDeployManager()

        log.info("Running DRY RUN")
        deploy_manager = DryRunDeployManager(
            resources=cls._parse_resource_dir(args.resource_dir)
        )
        if args.cr:
            log.info("Applying CR [%s]", args.cr)
            with open(args.cr, encoding="utf-8") as handle:
                cr_manifest = yaml.safe_load(handle)
            cr_manifest.setdefault("metadata", {}).setdefault(
                "namespace", DEFAULT_NAMESPACE
            )
            log.debug3(cr_manifest)
            deploy_manager.apply(cr_manifest)
        return deploy_manager

    @staticmethod
    def _parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
        """If given, this will parse all yaml files found in the given directory"""
        all_resources = []
        if resource_dir is not None:
            for fname in sorted(os.listdir(resource_dir)):
                if fname.endswith(".yaml") or fname.endswith(".yml"):
                    resource_path = os.path.join(resource_dir, fname)
                    log.debug3("Reading resource file [%s]", resource_path)
                    with open(resource_path, encoding="utf-8") as handle:
                        all_resources.extend(
                            resource for resource in yaml.safe_load_all(handle) if resource
                        )
        return all_resources
