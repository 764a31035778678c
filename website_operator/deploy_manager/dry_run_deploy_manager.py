"""
The DryRunDeployManager implements the DeployManager interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime, timedelta
from queue import Empty, Queue
from threading import RLock
from typing import Dict, Iterator, List, Optional, Tuple
import copy
import itertools
import uuid

# First Party
import alog

# Local
from ..constants import SERVICE_KIND
from ..exceptions import (
    AlreadyExistsError,
    ClusterError,
    ConflictError,
    InvalidReason,
    InvalidSpecError,
)
from ..managed_object import ManagedObject
from ..patch_strategic_merge import patch_strategic_merge
from .base import DeployManagerBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("DRY-RUN")

# Lock to ensure cluster mutations are thread safe
DRY_RUN_CLUSTER_LOCK = RLock()

# (namespace, kind, api_version, name)
ClusterKey = Tuple[Optional[str], str, str, str]


class DryRunDeployManager(DeployManagerBase):
    """
    Deploy manager which doesn't actually deploy! It emulates the behaviors of
    the API server that the reconciler relies on:

    * create of an existing object fails with AlreadyExistsError
    * NodePort allocation is cluster wide and checked before name uniqueness,
      so a second create of the same Service fails with an allocated port
    * patches are applied as strategic merge patches and honor a
      metadata.resourceVersion precondition
    """

    def __init__(self, resources=None):
        """Construct with an optional list of resources that already exist in
        the cluster
        """
        self._cluster_content: Dict[ClusterKey, dict] = {}
        self._resource_versions = itertools.count(1)

        # Event queues of the open watches keyed by their filter
        self._watchers: List[Tuple[dict, Queue]] = []

        # Add the provided resources without running any validation
        for resource in resources or []:
            self._store(copy.deepcopy(resource))

    ## Interface ###############################################################

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.debug(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )
        with DRY_RUN_CLUSTER_LOCK:
            return copy.deepcopy(self._find(kind, name, namespace, api_version))

    def create(self, resource_definition):
        resource = copy.deepcopy(resource_definition)
        namespace, kind, api_version, name = self._key(resource)
        log.info("DRY RUN create [%s/%s/%s] in %s", api_version, kind, name, namespace)

        with DRY_RUN_CLUSTER_LOCK:
            # Port allocation happens before the name is checked
            if kind == SERVICE_KIND:
                self._check_node_ports(resource)

            if self._find(kind, name, namespace, api_version) is not None:
                raise AlreadyExistsError(f'{kind} "{name}" already exists')

            metadata = resource.setdefault("metadata", {})
            metadata["uid"] = str(uuid.uuid4())
            metadata["creationTimestamp"] = datetime.now().isoformat()
            stored = self._store(resource)
        return copy.deepcopy(stored)

    def patch(self, kind, name, namespace, patch, api_version=None):
        log.info("DRY RUN patch [%s/%s] in %s", kind, name, namespace)
        patch = copy.deepcopy(patch)
        with DRY_RUN_CLUSTER_LOCK:
            current = copy.deepcopy(self._find(kind, name, namespace, api_version))
            if current is None:
                raise ClusterError(f'{kind} "{name}" not found in {namespace}')

            # A resourceVersion in the patch is a precondition, not a change
            expected_version = patch.get("metadata", {}).pop("resourceVersion", None)
            current_version = current.get("metadata", {}).get("resourceVersion")
            if expected_version is not None and expected_version != current_version:
                log.warning(
                    "Unable to patch [%s/%s]. resourceVersion %s is out of date",
                    kind,
                    name,
                    expected_version,
                )
                raise ConflictError(
                    f'Operation cannot be fulfilled on {kind} "{name}": '
                    "the object has been modified"
                )
            if not patch.get("metadata", True):
                del patch["metadata"]

            stored = self._store(patch_strategic_merge(current, patch))
        return copy.deepcopy(stored)

    def delete(self, kind, name, namespace=None, api_version=None):
        log.info("DRY RUN delete [%s/%s] in %s", kind, name, namespace)
        with DRY_RUN_CLUSTER_LOCK:
            content = self._find(kind, name, namespace, api_version)
            if content is None:
                log.debug2("Nothing to delete for [%s/%s]", kind, name)
                return False
            del self._cluster_content[self._key(content)]
            self._notify(KubeEventType.DELETED, content)
        return True

    def filter_objects_current_state(
        self, kind, namespace=None, api_version=None, label_selector=None
    ):
        log.debug(
            "DRY RUN filter_objects_current_state of [%s] in [%s]", kind, namespace
        )
        with DRY_RUN_CLUSTER_LOCK:
            return [
                copy.deepcopy(resource)
                for resource in self._list(kind, namespace, api_version, label_selector)
            ]

    def watch_objects(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        timeout: Optional[float] = 15,
    ) -> Iterator[KubeWatchEvent]:
        """Watch the DryRunDeployManager for resource changes. The stream ends
        after timeout seconds, or never if timeout is falsy.
        """
        watch_filter = dict(
            kind=kind,
            api_version=api_version,
            namespace=namespace,
            label_selector=label_selector,
        )
        event_queue = Queue()
        watcher = (watch_filter, event_queue)

        # Register before listing so no change is missed
        with DRY_RUN_CLUSTER_LOCK:
            self._watchers.append(watcher)
            initial = [
                ManagedObject(copy.deepcopy(manifest))
                for manifest in self._list(kind, namespace, api_version, label_selector)
            ]

        try:
            for resource in initial:
                log.debug2("Yielding initial event for %s", resource)
                yield KubeWatchEvent(type=KubeEventType.ADDED, resource=resource)

            end_time = datetime.max
            if timeout:
                end_time = datetime.now() + timedelta(seconds=timeout)
            while datetime.now() < end_time:
                sec_till_end = (end_time - datetime.now()).total_seconds()
                try:
                    event = event_queue.get(timeout=max(min(sec_till_end, 1), 0.01))
                except Empty:
                    continue
                log.debug2("Yielding event %s", event)
                yield event
        finally:
            log.debug2("Closing watch for %s", watch_filter)
            with DRY_RUN_CLUSTER_LOCK:
                self._watchers.remove(watcher)

    ## Dry Run Methods #########################################################

    def apply(self, resource_definition: dict) -> dict:
        """Store the given manifest as-is, replacing any current version. This
        emulates an external actor (e.g. a user applying a Website) and does no
        validation.
        """
        with DRY_RUN_CLUSTER_LOCK:
            stored = self._store(copy.deepcopy(resource_definition))
        return copy.deepcopy(stored)

    ## Implementation Details ##################################################

    @staticmethod
    def _key(resource: dict) -> ClusterKey:
        metadata = resource.get("metadata", {})
        return (
            metadata.get("namespace"),
            resource.get("kind"),
            resource.get("apiVersion"),
            metadata.get("name"),
        )

    def _find(self, kind, name, namespace, api_version) -> Optional[dict]:
        """Look up the stored object. Callers must hold the cluster lock and
        must not modify the result.
        """
        matches = [
            resource
            for (ns, knd, api_ver, nm), resource in self._cluster_content.items()
            if (ns, knd, nm) == (namespace, kind, name)
            and api_version in (None, api_ver)
        ]
        log.debug3(
            "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
        )
        return matches[0] if len(matches) == 1 else None

    def _list(
        self, kind, namespace=None, api_version=None, label_selector=None
    ) -> List[dict]:
        """List the stored objects of a kind. A namespace of None lists every
        namespace. Callers must hold the cluster lock and must not modify the
        results.
        """
        return [
            resource
            for resource in self._cluster_content.values()
            if _matches(resource, kind, namespace, api_version, label_selector)
        ]

    def _check_node_ports(self, service: dict):
        """Make sure none of the node ports requested by the given Service are
        already allocated to a Service anywhere in the cluster
        """
        requested = {
            port.get("nodePort")
            for port in service.get("spec", {}).get("ports", [])
            if port.get("nodePort") is not None
        }
        allocated = {
            port.get("nodePort")
            for existing in self._list(kind=SERVICE_KIND)
            for port in existing.get("spec", {}).get("ports", [])
        }
        for node_port in sorted(requested & allocated):
            message = f"Invalid value: {node_port}: provided port is already allocated"
            raise InvalidSpecError(
                message=f'Service "{service["metadata"].get("name")}" is invalid: '
                f"spec.ports[0].nodePort: {message}",
                reason=InvalidReason.NODE_PORT_ALLOCATED,
                causes=[
                    {
                        "reason": "FieldValueInvalid",
                        "message": message,
                        "field": "spec.ports[0].nodePort",
                    }
                ],
            )

    def _store(self, resource: dict) -> dict:
        """Write a resource into the cluster map and notify watches. Callers
        must hold the cluster lock.
        """
        key = self._key(resource)
        log.debug2("DRY RUN store %s", key)
        log.debug4(resource)

        resource.setdefault("metadata", {})["resourceVersion"] = str(
            next(self._resource_versions)
        )
        event_type = (
            KubeEventType.MODIFIED if key in self._cluster_content else KubeEventType.ADDED
        )
        self._cluster_content[key] = resource
        self._notify(event_type, resource)
        return resource

    def _notify(self, event_type: KubeEventType, resource: dict):
        for watch_filter, event_queue in self._watchers:
            if _matches(resource, **watch_filter):
                event_queue.put(
                    KubeWatchEvent(
                        type=event_type, resource=ManagedObject(copy.deepcopy(resource))
                    )
                )


def _matches(
    resource: dict,
    kind: str,
    namespace: Optional[str] = None,
    api_version: Optional[str] = None,
    label_selector: Optional[str] = None,
) -> bool:
    metadata = resource.get("metadata", {})
    return (
        resource.get("kind") == kind
        and namespace in (None, metadata.get("namespace"))
        and api_version in (None, resource.get("apiVersion"))
        and _match_labels(metadata.get("labels") or {}, label_selector)
    )


def _match_labels(labels: dict, label_selector: Optional[str]) -> bool:
    """Match a comma separated list of key=value label requirements"""
    if not label_selector:
        return True
    for requirement in label_selector.split(","):
        key, _, value = requirement.replace("==", "=").partition("=")
        if labels.get(key.strip()) != value.strip():
            return False
    return True
