"""
Read access to the Website and its children. Every call goes to the cluster;
nothing is cached between calls.
"""

# Standard
from enum import Enum
from typing import Optional

# First Party
import alog

# Local
from . import constants
from .deploy_manager import DeployManagerBase
from .managed_object import ResourceIdentity

log = alog.use_channel("FETCH")


class ChildKind(Enum):
    """The kinds of resources owned by a Website"""

    DEPLOYMENT = (constants.DEPLOYMENT_API_VERSION, constants.DEPLOYMENT_KIND)
    SERVICE = (constants.SERVICE_API_VERSION, constants.SERVICE_KIND)

    @property
    def api_version(self) -> str:
        return self.value[0]

    @property
    def kind(self) -> str:
        return self.value[1]


class StateFetcher:
    """The StateFetcher reads the Website and its children by identity. A None
    result means the object does not exist; every other failure propagates from
    the deploy manager unchanged.
    """

    def __init__(self, deploy_manager: DeployManagerBase):
        self.deploy_manager = deploy_manager

    def get_parent(self, identity: ResourceIdentity) -> Optional[dict]:
        """Get the current Website with the given identity"""
        log.debug2("Fetching %s [%s]", constants.WEBSITE_KIND, identity)
        return self.deploy_manager.get_object_current_state(
            kind=constants.WEBSITE_KIND,
            name=identity.name,
            namespace=identity.namespace,
            api_version=constants.WEBSITE_API_VERSION,
        )

    def get_child(self, kind: ChildKind, identity: ResourceIdentity) -> Optional[dict]:
        """Get the current child of the given kind for the Website identity"""
        log.debug2("Fetching %s [%s]", kind.kind, identity)
        return self.deploy_manager.get_object_current_state(
            kind=kind.kind,
            name=identity.name,
            namespace=identity.namespace,
            api_version=kind.api_version,
        )
