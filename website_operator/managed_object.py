"""
Helper objects to represent kubernetes objects seen by the operator
"""
# Standard
from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceIdentity:
    """The (namespace, name) identity shared by a Website and its children"""

    namespace: str
    name: str

    def __str__(self):
        return f"{self.namespace}/{self.name}"


class ManagedObject:
    """Basic struct to represent a kubernetes object"""

    def __init__(self, definition: dict):
        self.kind = definition.get("kind")
        self.metadata = definition.get("metadata", {})
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.labels = self.metadata.get("labels") or {}
        self.resource_version = self.metadata.get("resourceVersion")
        self.api_version = definition.get("apiVersion")
        self.definition = definition

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    @property
    def identity(self) -> ResourceIdentity:
        """The namespace/name identity of this object"""
        return ResourceIdentity(namespace=self.namespace, name=self.name)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.name}"

    def __repr__(self):
        return str(self)
