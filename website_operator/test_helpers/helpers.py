"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from unittest import mock
import copy
import inspect
import os

# First Party
import alog

# Local
from website_operator.config import library_config as config_detail_dict
from website_operator.constants import (
    IMAGE_TAG_FIELD,
    WEBSITE_API_VERSION,
    WEBSITE_KIND,
)
from website_operator.deploy_manager.dry_run_deploy_manager import (
    DryRunDeployManager,
)

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "test-website"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "test"
SOME_OTHER_NAMESPACE = "somewhere"
TEST_IMAGE_TAG = "1.0.0"


def setup_website_cr(
    image_tag=TEST_IMAGE_TAG,
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    **kwargs,
):
    """Make a Website manifest. Passing image_tag=None leaves the tag unset."""
    cr_dict = kwargs or {}
    cr_dict.setdefault("kind", WEBSITE_KIND)
    cr_dict.setdefault("apiVersion", WEBSITE_API_VERSION)
    cr_dict.setdefault("metadata", {}).setdefault("name", name)
    cr_dict["metadata"].setdefault("namespace", namespace)
    cr_dict["metadata"].setdefault("uid", TEST_INSTANCE_UID)
    spec = cr_dict.setdefault("spec", {})
    if image_tag is not None:
        spec.setdefault(IMAGE_TAG_FIELD, image_tag)
    return copy.deepcopy(cr_dict)


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


def _call_kind(args, kwargs):
    """Get the kind a deploy manager call operates on. create takes a whole
    manifest while every other call takes the kind directly.
    """
    if "kind" in kwargs:
        return kwargs["kind"]
    if "resource_definition" in kwargs:
        return kwargs["resource_definition"].get("kind")
    if args:
        if isinstance(args[0], dict):
            return args[0].get("kind")
        return args[0]
    return None


def get_failable_method(fail_flag, method, failure_return=False):
    """Wrap the method so that it fails based on the fail flag. The flag may be
    a dict mapping kind names to flags so that only calls for those kinds fail.
    """
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        flag = fail_flag
        if isinstance(flag, dict):
            flag = flag.get(_call_kind(args, kwargs), False)
        log.debug4("Running failable mock of [%s] with fail flag: %s", str(method), flag)
        if isinstance(flag, Exception) or (
            inspect.isclass(flag) and issubclass(flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise flag
        if callable(flag):
            log.debug4("Calling callable fail flag")
            res = flag()
            if res is not None:
                return res
        elif flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        res = method(*args, **kwargs)
        log.debug4("Passthrough res: %s", res)
        return res

    return failable_method


class MockDeployManager(DryRunDeployManager):
    """The MockDeployManager wraps a standard DryRunDeployManager and adds
    configuration options to simulate failures in each of its operations.
    Each fail flag may be given once for all kinds or as a dict keyed by kind.
    """

    def __init__(
        self,
        create_fail=False,
        patch_fail=False,
        delete_fail=False,
        get_state_fail=False,
        resources=None,
    ):
        """This DeployManager can be configured to have various failure cases
        and will mock the state of the cluster so that get_object_current_state
        will pull its information from the local dict.
        """
        super().__init__(resources)

        self.create_fail = create_fail
        self.patch_fail = patch_fail
        self.delete_fail = delete_fail
        self.get_state_fail = get_state_fail
        self.enable_mocks()

    #######################
    ## Helpers for Tests ##
    #######################

    def enable_mocks(self):
        """Turn the mocks on"""
        self.create = mock.Mock(
            side_effect=get_failable_method(self.create_fail, super().create, {})
        )
        self.patch = mock.Mock(
            side_effect=get_failable_method(self.patch_fail, super().patch, {})
        )
        self.delete = mock.Mock(
            side_effect=get_failable_method(self.delete_fail, super().delete, False)
        )
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.get_state_fail, super().get_object_current_state, None
            )
        )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE, api_version=None):
        """Read an object without going through the mocks"""
        return DryRunDeployManager.get_object_current_state(
            self, kind, name, namespace, api_version
        )

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None

    def calls_for_kind(self, method: mock.Mock, kind: str) -> list:
        """Get the recorded calls of a mocked method that targeted the kind"""
        return [
            call for call in method.call_args_list if _call_kind(call.args, call.kwargs) == kind
        ]
