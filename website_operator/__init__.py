"""
Package exports
"""

# Local
from . import config, reconcile, watch_manager
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from .exceptions import assert_cluster, assert_config, assert_precondition
from .labels import label_selector_for, labels_for, owner_name_from_labels
from .managed_object import ManagedObject, ResourceIdentity
from .patch import compute_image_patch, observed_image
from .reconcile import ReconcileState, ReconciliationResult, WebsiteReconciler
from .resources import build_deployment, build_service, image_for_tag
from .state_fetcher import ChildKind, StateFetcher
from .watch_manager import WebsiteWatchManager
