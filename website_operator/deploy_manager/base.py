"""
This defines the base class for all DeployManager types.
"""

# Standard
from typing import Iterator, List, Optional
import abc

# Local
from .kube_event import KubeWatchEvent


class DeployManagerBase(abc.ABC):
    """
    Base class for deploy managers which are responsible for every read and
    write the operator makes against the cluster. Implementations classify
    cluster responses into the operator's exceptions so that callers never
    inspect raw API errors.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        """Fetch the current state of a given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            current_state:  Optional[dict]
                The dict representation of the current object's configuration,
                or None if not present. Any failure other than the object not
                being found is raised.
        """

    @abc.abstractmethod
    def create(self, resource_definition: dict) -> dict:
        """Create a new object in the cluster

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  dict
                The object as stored by the cluster

        Raises:
            AlreadyExistsError: An object with the same identity exists
            InvalidSpecError: The cluster rejected the manifest
        """

    @abc.abstractmethod
    def patch(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        patch: dict,
        api_version: Optional[str] = None,
    ) -> dict:
        """Apply a strategic merge patch to an existing object

        Args:
            kind:  str
                The kind of the object to patch
            name:  str
                The name of the object to patch
            namespace:  Optional[str]
                The namespace of the object to patch
            patch:  dict
                The strategic merge patch document
            api_version:  Optional[str]
                The api_version of the resource kind to patch

        Returns:
            patched:  dict
                The object as stored by the cluster after the patch

        Raises:
            ConflictError: The patch raced with another writer
        """

    @abc.abstractmethod
    def delete(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        """Delete an object from the cluster if it exists

        Args:
            kind:  str
                The kind of the object to delete
            name:  str
                The name of the object to delete
            namespace:  Optional[str]
                The namespace of the object to delete
            api_version:  Optional[str]
                The api_version of the resource kind to delete

        Returns:
            deleted:  bool
                True if the object was deleted, False if it was already absent
        """

    @abc.abstractmethod
    def filter_objects_current_state(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[dict]:
        """Fetch the list of objects of a kind that match the label selector

        Args:
            kind:  str
                The kind of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the objects. None searches all
                namespaces.
            api_version:  Optional[str]
                The api_version of the resource kind to fetch
            label_selector:  Optional[str]
                The label_selector to filter the resources

        Returns:
            current_state:  List[dict]
                A list of dict representations of the matching objects
        """

    @abc.abstractmethod
    def watch_objects(
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Listen for changes in the cluster and return a stream of
        KubeWatchEvents

        Args:
            kind:  str
                The kind of the objects to watch
            api_version:  Optional[str]
                The api_version of the resource kind to watch
            namespace:  Optional[str]
                The namespace to watch. None watches all namespaces.
            label_selector:  Optional[str]
                The label_selector to filter the resources

        Returns:
            watch_stream: Iterator[KubeWatchEvent]
                A stream of KubeWatchEvents generated while watching
        """
