"""
Builders for the desired state of the children of a Website. Each call returns
a brand new manifest so callers are free to mutate the result.
"""

# Local
from . import constants
from .labels import labels_for


def image_for_tag(image_tag: str) -> str:
    """Get the full image reference for the given tag. The tag is not
    validated here; the cluster decides whether it is acceptable.
    """
    return f"{constants.IMAGE_REPOSITORY}:{image_tag}"


def build_deployment(name: str, namespace: str, image_tag: str) -> dict:
    """Build the Deployment that runs the website

    Args:
        name:  str
            The name of the owning Website (shared by the Deployment)
        namespace:  str
            The namespace of the owning Website
        image_tag:  str
            The tag of the website image to run

    Returns:
        deployment:  dict
            The full Deployment manifest
    """
    return {
        "apiVersion": constants.DEPLOYMENT_API_VERSION,
        "kind": constants.DEPLOYMENT_KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": labels_for(name),
        },
        "spec": {
            "replicas": constants.DEPLOYMENT_REPLICAS,
            "selector": {"matchLabels": labels_for(name)},
            "template": {
                "metadata": {"labels": labels_for(name)},
                "spec": {
                    "containers": [
                        {
                            "name": constants.CONTAINER_NAME,
                            "image": image_for_tag(image_tag),
                            "ports": [{"containerPort": constants.CONTAINER_PORT}],
                        }
                    ],
                },
            },
        },
    }


def build_service(name: str, namespace: str) -> dict:
    """Build the NodePort Service that exposes the website

    Args:
        name:  str
            The name of the owning Website (shared by the Service)
        namespace:  str
            The namespace of the owning Website

    Returns:
        service:  dict
            The full Service manifest
    """
    return {
        "apiVersion": constants.SERVICE_API_VERSION,
        "kind": constants.SERVICE_KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": labels_for(name),
        },
        "spec": {
            "type": constants.SERVICE_TYPE,
            "ports": [
                {
                    "port": constants.SERVICE_PORT,
                    "nodePort": constants.SERVICE_NODE_PORT,
                }
            ],
            "selector": labels_for(name),
        },
    }
