"""
This DeployManager is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when the operator is running
in the cluster or outside the cluster making live changes.

Every API error the reconciler needs to branch on is classified here into the
operator's exceptions. Errors that are not recognized are re-raised unchanged.
"""
# Standard
from collections import namedtuple
from typing import Iterator, List, Optional
import json
import re

# Third Party
from kubernetes import client
from kubernetes.watch import Watch
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    ConflictError as ApiConflictError,
    DynamicApiError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
    UnprocessibleEntityError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from .. import config
from ..exceptions import (
    AlreadyExistsError,
    ClusterError,
    ConflictError,
    InvalidReason,
    InvalidSpecError,
    assert_cluster,
)
from ..managed_object import ManagedObject
from ..patch import PATCH_CONTENT_TYPE
from .base import DeployManagerBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("OSFTD")

## Deploy Manager ##############################################################


# See this document for value reasonings
# https://github.com/kubernetes-client/python/blob/master/examples/watch/timeout-settings.md
SERVER_WATCH_TIMEOUT = 3600
CLIENT_WATCH_TIMEOUT = 30

# Status reason reported by the API server when creating an existing object
ALREADY_EXISTS_REASON = "AlreadyExists"

# Cause reported when a Service requests a node port that is in use
FIELD_VALUE_INVALID_REASON = "FieldValueInvalid"
NODE_PORT_FIELD_EXPR = re.compile(r"^spec\.ports\[\d+\]\.nodePort$")
PORT_ALLOCATED_MESSAGE = "already allocated"

ResourceIdentifiers = namedtuple(
    "ResourceIdentifiers", ["api_version", "kind", "name", "namespace"]
)


class OpenshiftDeployManager(DeployManagerBase):
    """This DeployManager uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. If not given, one is lazily created
                from the in-cluster config or the local kubeconfig.
        """
        log.debug("Initializing openshift client")
        self._client = dynamic_client

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            resource = resource_handle.get(name=name, namespace=namespace)
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return None

        # If the resource was found, return it's dict representation
        return resource.to_dict()

    @alog.logged_function(log.debug)
    def create(self, resource_definition: dict) -> dict:
        res_id = self._get_resource_identifiers(resource_definition)
        resource_handle = self._get_resource_handle(res_id.kind, res_id.api_version)

        log.debug2(
            "Attempting to create [%s/%s/%s] in %s",
            res_id.api_version,
            res_id.kind,
            res_id.name,
            res_id.namespace,
        )
        try:
            return resource_handle.create(
                body=resource_definition,
                namespace=res_id.namespace,
                field_manager=config.field_manager,
            ).to_dict()
        except ApiConflictError as err:
            if _status_body(err).get("reason") == ALREADY_EXISTS_REASON:
                raise AlreadyExistsError(_status_message(err)) from err
            raise ConflictError(_status_message(err)) from err
        except UnprocessibleEntityError as err:
            log.debug3("Caught 422 error: %s", err, exc_info=True)
            causes = _status_body(err).get("details", {}).get("causes") or []
            raise InvalidSpecError(
                message=_status_message(err),
                reason=classify_invalid_causes(causes),
                causes=causes,
            ) from err

    @alog.logged_function(log.debug)
    def patch(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        patch: dict,
        api_version: Optional[str] = None,
    ) -> dict:
        resource_handle = self._get_resource_handle(kind, api_version)

        log.debug2(
            "Attempting to patch [%s/%s/%s] in %s", api_version, kind, name, namespace
        )
        log.debug4(patch)
        try:
            return resource_handle.patch(
                body=patch,
                name=name,
                namespace=namespace,
                content_type=PATCH_CONTENT_TYPE,
                field_manager=config.field_manager,
            ).to_dict()
        except ApiConflictError as err:
            raise ConflictError(_status_message(err)) from err

    @alog.logged_function(log.debug)
    def delete(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        resource_handle = self._get_resource_handle(kind, api_version)
        log.debug2(
            "Attempting to delete [%s/%s/%s] from %s", api_version, kind, name, namespace
        )
        try:
            resource_handle.delete(name=name, namespace=namespace)
        except NotFoundError as err:
            log.debug2("Valid error caught when deleting [%s/%s]: %s", kind, name, err)
            return False
        return True

    def filter_objects_current_state(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[dict]:
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            list_obj = resource_handle.get(
                label_selector=label_selector, namespace=namespace
            )
        except NotFoundError:
            log.debug(
                "No objects of kind [%s] found in namespace [%s]", kind, namespace
            )
            return []

        return list_obj.to_dict().get("items", [])

    def watch_objects(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        watch_manager: Optional[Watch] = None,
    ) -> Iterator[KubeWatchEvent]:
        watch_manager = watch_manager if watch_manager else Watch()
        resource_handle = self._get_resource_handle(kind, api_version)
        resource_version = 0

        while True:
            try:
                for event_obj in watch_manager.stream(
                    resource_handle.get,
                    resource_version=resource_version,
                    namespace=namespace,
                    label_selector=label_selector,
                    serialize=False,
                    timeout_seconds=SERVER_WATCH_TIMEOUT,
                    _request_timeout=CLIENT_WATCH_TIMEOUT,
                ):
                    event_type = KubeEventType(event_obj["type"])
                    event_resource = ManagedObject(event_obj["object"])
                    resource_version = event_resource.resource_version
                    yield KubeWatchEvent(event_type, event_resource)
            except client.exceptions.ApiException as exception:
                if exception.status == 410:
                    log.debug2(
                        "Resource age expired, restarting watch %s/%s",
                        kind,
                        api_version,
                    )
                    resource_version = None
                else:
                    log.info("Unknown ApiException received, re-raising")
                    raise exception
            except urllib3.exceptions.ReadTimeoutError:
                log.debug4("Watch Socket closed, restarting watch %s/%s", kind, api_version)
            except urllib3.exceptions.ProtocolError:
                log.debug2(
                    "Invalid Chunk from server, restarting watch %s/%s",
                    kind,
                    api_version,
                )

            # This is hidden attribute so probably not best to check
            if watch_manager._stop:  # pylint: disable=protected-access
                log.debug(
                    "Internal watch stopped. Stopping deploy manager watch for %s/%s",
                    kind,
                    api_version,
                )
                return

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the operator is
        running
        """
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: Optional[str]) -> Resource:
        """Get the openshift resource handle for a specified kind and
        api_version. A kind the cluster does not serve is a cluster error, never
        an absent object.
        """
        log.debug2("Fetching resource handle [%s/%s]", api_version, kind)
        try:
            return self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError) as err:
            raise ClusterError(
                f"Failed to fetch resource handle for {api_version}/{kind}: {err}"
            ) from err

    @staticmethod
    def _get_resource_identifiers(resource_definition) -> ResourceIdentifiers:
        api_version = resource_definition.get("apiVersion")
        kind = resource_definition.get("kind")
        metadata = resource_definition.get("metadata", {})
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        assert_cluster(
            kind and api_version and name,
            "Cannot operate on a resource without apiVersion, kind and name",
        )
        return ResourceIdentifiers(api_version, kind, name, namespace)


## Status Classification #######################################################


def classify_invalid_causes(causes: List[dict]) -> InvalidReason:
    """Classify the causes of a 422 Invalid Status into a structured reason

    Args:
        causes:  List[dict]
            The details.causes entries of the Status returned by the server

    Returns:
        reason:  InvalidReason
            NODE_PORT_ALLOCATED if any cause reports an allocated node port,
            UNKNOWN otherwise
    """
    for cause in causes:
        if (
            cause.get("reason") == FIELD_VALUE_INVALID_REASON
            and NODE_PORT_FIELD_EXPR.match(cause.get("field") or "")
            and PORT_ALLOCATED_MESSAGE in (cause.get("message") or "")
        ):
            return InvalidReason.NODE_PORT_ALLOCATED
    return InvalidReason.UNKNOWN


def _status_body(err: DynamicApiError) -> dict:
    """Parse the Status object returned with an API error"""
    body = err.body
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    if not body:
        return {}
    try:
        parsed = json.loads(body)
    except ValueError:
        log.debug2("Non-json error body: %s", body)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _status_message(err: DynamicApiError) -> str:
    return _status_body(err).get("message") or str(err)
