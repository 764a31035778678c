"""
The WebsiteReconciler drives the children of a single Website toward the state
the Website describes. Each call to reconcile is one self-contained attempt:
all state is fetched fresh from the cluster, nothing is remembered between
attempts, and any attempt may be safely repeated.
"""

# Standard
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import base64
import threading
import uuid

# First Party
import alog

# Local
from .constants import CONTAINER_NAME, IMAGE_TAG_FIELD, WEBSITE_KIND
from .deploy_manager import DeployManagerBase
from .exceptions import (
    AlreadyExistsError,
    InvalidReason,
    InvalidSpecError,
    ReconcileCancelledError,
    TeardownError,
    assert_precondition,
)
from .managed_object import ResourceIdentity
from .patch import compute_image_patch, observed_image
from .resources import build_deployment, build_service, image_for_tag
from .state_fetcher import ChildKind, StateFetcher

log = alog.use_channel("RECONCILE")


## Data models #################################################################


class ReconcileState(Enum):
    """The states a single reconciliation attempt moves through"""

    START = "Start"
    TEARING_DOWN = "TearingDown"
    ENSURING_DEPLOYMENT = "EnsuringDeployment"
    ENSURING_SERVICE = "EnsuringService"
    RECONCILING_DRIFT = "ReconcilingDrift"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class ReconciliationResult:
    """ReconciliationResult is the outcome of a single reconciliation attempt"""

    # The Website that was reconciled
    identity: ResourceIdentity
    # Terminal state of the attempt, either DONE or FAILED
    state: ReconcileState
    # The error that caused a FAILED attempt
    exception: Optional[Exception] = None
    # Unique id of the attempt used to correlate logs
    reconciliation_id: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is ReconcileState.DONE

    @property
    def requeue(self) -> bool:
        """Failed attempts are expected to be re-invoked by the caller"""
        return self.state is ReconcileState.FAILED

    @property
    def cancelled(self) -> bool:
        return isinstance(self.exception, ReconcileCancelledError)


## WebsiteReconciler ###########################################################


class WebsiteReconciler:
    """This class runs reconciliations for Websites against the cluster
    reachable through its DeployManager. It holds no mutable state, so a single
    instance may reconcile different Websites from several threads at once.
    """

    def __init__(self, deploy_manager: DeployManagerBase):
        """Construct with the DeployManager used for every cluster operation

        Args:
            deploy_manager:  DeployManagerBase
                The handle to the cluster
        """
        self.deploy_manager = deploy_manager
        self.fetcher = StateFetcher(deploy_manager)

    @alog.timed_function(log.debug, "Reconcile finished in: ")
    def reconcile(
        self,
        namespace: str,
        name: str,
        cancel_event: Optional[threading.Event] = None,
        reconciliation_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """Run a single reconciliation attempt for the named Website

        Args:
            namespace:  str
                The namespace of the Website
            name:  str
                The name of the Website
            cancel_event:  Optional[threading.Event]
                If given and set, the attempt stops before its next cluster
                call and finishes as a cancelled failure
            reconciliation_id:  Optional[str]
                Id used to correlate the logs of this attempt. One is generated
                if not given.

        Returns:
            result:  ReconciliationResult
                DONE if the cluster matched the Website when the attempt
                finished, FAILED with the causing exception otherwise
        """
        identity = ResourceIdentity(namespace=namespace, name=name)
        reconciliation_id = reconciliation_id or self.generate_id()
        log.info(
            "Reconciling %s [%s] (id: %s)", WEBSITE_KIND, identity, reconciliation_id
        )

        try:
            self._run(identity, cancel_event)

        except ReconcileCancelledError as err:
            log.info("Reconcile of [%s] cancelled: %s", identity, err)
            return self._finish(identity, reconciliation_id, err)

        # Any unexpected error ends the attempt and is returned unchanged
        except Exception as err:  # pylint: disable=broad-except
            log.warning("Reconcile of [%s] failed: %s", identity, err, exc_info=True)
            return self._finish(identity, reconciliation_id, err)

        return self._finish(identity, reconciliation_id)

    @classmethod
    def generate_id(cls) -> str:
        """Generates a unique human readable id for a reconciliation

        Returns:
            id: str
                A unique base32 encoded id
        """
        base32_str = base64.b32encode(uuid.uuid4().bytes).decode("utf-8")
        return base32_str[:22]

    ## State Machine ###########################################################

    def _run(self, identity: ResourceIdentity, cancel_event: Optional[threading.Event]):
        self._enter(identity, ReconcileState.START)
        self._check_cancelled(identity, cancel_event)
        website = self.fetcher.get_parent(identity)

        if website is None:
            log.info(
                '%s "%s" does not exist, deleting associated resources',
                WEBSITE_KIND,
                identity.name,
            )
            self._tear_down(identity, cancel_event)
            return

        # The tag is passed through as-is. Validating it is up to the cluster.
        image_tag = (website.get("spec") or {}).get(IMAGE_TAG_FIELD, "")
        log.debug('%s "%s" has tag "%s"', WEBSITE_KIND, identity.name, image_tag)

        self._ensure_deployment(identity, image_tag, cancel_event)
        if self._ensure_service(identity, cancel_event):
            self._reconcile_drift(identity, image_tag, cancel_event)

    def _tear_down(
        self, identity: ResourceIdentity, cancel_event: Optional[threading.Event]
    ):
        """Delete every child of the Website. Each delete is attempted even if
        another one fails so that every failure is reported.
        """
        self._enter(identity, ReconcileState.TEARING_DOWN)
        errors = []
        for child_kind in ChildKind:
            self._check_cancelled(identity, cancel_event)
            try:
                deleted = self.deploy_manager.delete(
                    kind=child_kind.kind,
                    name=identity.name,
                    namespace=identity.namespace,
                    api_version=child_kind.api_version,
                )
            except Exception as err:  # pylint: disable=broad-except
                log.error(
                    'Failed to delete %s "%s": %s', child_kind.kind, identity.name, err
                )
                errors.append(err)
                continue

            if deleted:
                log.info('Deleted %s "%s"', child_kind.kind, identity.name)
            else:
                log.debug2('%s "%s" already absent', child_kind.kind, identity.name)

        if errors:
            raise TeardownError(errors)

    def _ensure_deployment(
        self,
        identity: ResourceIdentity,
        image_tag: str,
        cancel_event: Optional[threading.Event],
    ):
        """Create the Deployment. An existing Deployment is left untouched here;
        image drift is only corrected once the Service is known to exist.
        """
        self._enter(identity, ReconcileState.ENSURING_DEPLOYMENT)
        self._check_cancelled(identity, cancel_event)
        try:
            self.deploy_manager.create(
                build_deployment(identity.name, identity.namespace, image_tag)
            )
            log.info('Created Deployment for website "%s"', identity.name)
        except AlreadyExistsError:
            log.info('Deployment for website "%s" already exists', identity.name)

    def _ensure_service(
        self, identity: ResourceIdentity, cancel_event: Optional[threading.Event]
    ) -> bool:
        """Create the Service

        Returns:
            exists:  bool
                True if the Service already held its node port, meaning the
                Website was reconciled before and may have drifted
        """
        self._enter(identity, ReconcileState.ENSURING_SERVICE)
        self._check_cancelled(identity, cancel_event)
        try:
            self.deploy_manager.create(build_service(identity.name, identity.namespace))
        except InvalidSpecError as err:
            if err.reason is not InvalidReason.NODE_PORT_ALLOCATED:
                raise
            log.info('Service for website "%s" already exists', identity.name)
            return True

        log.info('Created Service for website "%s"', identity.name)
        return False

    def _reconcile_drift(
        self,
        identity: ResourceIdentity,
        image_tag: str,
        cancel_event: Optional[threading.Event],
    ):
        """Bring the image of the existing Deployment in line with the Website"""
        self._enter(identity, ReconcileState.RECONCILING_DRIFT)
        self._check_cancelled(identity, cancel_event)
        deployment = self.fetcher.get_child(ChildKind.DEPLOYMENT, identity)
        assert_precondition(
            deployment is not None,
            f'Deployment for website "{identity.name}" disappeared during reconcile',
        )
        current_image = observed_image(deployment)
        assert_precondition(
            current_image is not None,
            f'Deployment for website "{identity.name}" has no [{CONTAINER_NAME}] container',
        )

        desired_image = image_for_tag(image_tag)
        patch = compute_image_patch(deployment, desired_image)
        if patch is None:
            log.debug('Deployment for website "%s" is up to date', identity.name)
            return

        log.info('Image tag has updated from "%s" to "%s"', current_image, desired_image)
        self._check_cancelled(identity, cancel_event)
        self.deploy_manager.patch(
            kind=ChildKind.DEPLOYMENT.kind,
            name=identity.name,
            namespace=identity.namespace,
            patch=patch,
            api_version=ChildKind.DEPLOYMENT.api_version,
        )

    ## Implementation Details ##################################################

    @staticmethod
    def _enter(identity: ResourceIdentity, state: ReconcileState):
        log.debug("[%s] -> %s", identity, state.value)

    @staticmethod
    def _check_cancelled(
        identity: ResourceIdentity, cancel_event: Optional[threading.Event]
    ):
        if cancel_event is not None and cancel_event.is_set():
            raise ReconcileCancelledError(f"Reconcile of [{identity}] was cancelled")

    @classmethod
    def _finish(
        cls,
        identity: ResourceIdentity,
        reconciliation_id: str,
        exception: Optional[Exception] = None,
    ) -> ReconciliationResult:
        state = ReconcileState.FAILED if exception else ReconcileState.DONE
        cls._enter(identity, state)
        return ReconciliationResult(
            identity=identity,
            state=state,
            exception=exception,
            reconciliation_id=reconciliation_id,
        )
