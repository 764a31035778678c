"""
Drift detection for the Website Deployment. The only field the operator keeps
in sync after creation is the image of its container, so the patch produced
here addresses that single field and leaves every sibling field alone.
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from .constants import CONTAINER_NAME

log = alog.use_channel("DIFF")

# Patches are strategic merge patches so that the containers list is merged by
# container name rather than replaced
PATCH_CONTENT_TYPE = "application/strategic-merge-patch+json"


def observed_image(deployment: dict) -> Optional[str]:
    """Get the image of the managed container in the given Deployment, or None
    if the Deployment does not have the managed container
    """
    containers = (
        deployment.get("spec", {})
        .get("template", {})
        .get("spec", {})
        .get("containers")
        or []
    )
    for container in containers:
        if container.get("name") == CONTAINER_NAME:
            return container.get("image")
    return None


def compute_image_patch(observed_deployment: dict, desired_image: str) -> Optional[dict]:
    """Compare the observed image against the desired image and build the patch
    needed to converge them.

    Args:
        observed_deployment:  dict
            The Deployment as currently found in the cluster
        desired_image:  str
            The full image reference the container should run

    Returns:
        patch:  Optional[dict]
            None if the images already match, otherwise a strategic merge patch
            document that sets only the image of the managed container. When
            the observed object carries a resourceVersion it is included so a
            write based on stale state is rejected with a conflict.

    NOTE: Status writes by the Deployment controller also bump the
        resourceVersion, so a patch sent while a rollout is in progress is
        often rejected. The attempt then fails with a ConflictError and the
        retry computes the patch from fresh state.
    """
    current_image = observed_image(observed_deployment)
    if current_image == desired_image:
        log.debug2("Image [%s] is up to date", current_image)
        return None

    log.debug("Image drift detected: [%s] -> [%s]", current_image, desired_image)
    patch = {
        "spec": {
            "template": {
                "spec": {
                    "containers": [{"name": CONTAINER_NAME, "image": desired_image}]
                }
            }
        }
    }
    resource_version = observed_deployment.get("metadata", {}).get("resourceVersion")
    if resource_version is not None:
        patch["metadata"] = {"resourceVersion": resource_version}
    return patch
