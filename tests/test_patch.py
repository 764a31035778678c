"""
Tests for the Deployment drift detection
"""

# Third Party
import pytest

# Local
from website_operator.patch import PATCH_CONTENT_TYPE, compute_image_patch, observed_image
from website_operator.resources import build_deployment, image_for_tag

## Helpers #####################################################################


def observed_deployment(image_tag="1.0.0", resource_version="42"):
    deployment = build_deployment("foo", "bar", image_tag)
    if resource_version is not None:
        deployment["metadata"]["resourceVersion"] = resource_version
    return deployment


## Tests #######################################################################


def test_patch_content_type():
    """Make sure patches are sent as strategic merge patches"""
    assert PATCH_CONTENT_TYPE == "application/strategic-merge-patch+json"


def test_observed_image():
    """Make sure the image of the managed container is found"""
    assert observed_image(observed_deployment()) == image_for_tag("1.0.0")


def test_observed_image_among_other_containers():
    """Make sure the managed container is found by name, not position"""
    deployment = observed_deployment()
    deployment["spec"]["template"]["spec"]["containers"].insert(
        0, {"name": "sidecar", "image": "other:latest"}
    )
    assert observed_image(deployment) == image_for_tag("1.0.0")


@pytest.mark.parametrize(
    "deployment",
    [
        {},
        {"spec": {}},
        {"spec": {"template": {"spec": {"containers": None}}}},
        {"spec": {"template": {"spec": {"containers": [{"name": "other"}]}}}},
    ],
)
def test_observed_image_missing(deployment):
    """Make sure a Deployment without the managed container has no image"""
    assert observed_image(deployment) is None


def test_compute_image_patch_up_to_date():
    """Make sure no patch is produced when the images already match"""
    assert compute_image_patch(observed_deployment(), image_for_tag("1.0.0")) is None


def test_compute_image_patch_drift():
    """Make sure the patch addresses only the managed container's image and
    carries the observed resourceVersion as a precondition
    """
    patch = compute_image_patch(observed_deployment(), image_for_tag("2.0.0"))
    assert patch == {
        "metadata": {"resourceVersion": "42"},
        "spec": {
            "template": {
                "spec": {
                    "containers": [
                        {
                            "name": "nginx",
                            "image": "abangser/todo-local-storage:2.0.0",
                        }
                    ]
                }
            }
        },
    }


def test_compute_image_patch_no_resource_version():
    """Make sure no precondition is added when the observed object has no
    resourceVersion
    """
    patch = compute_image_patch(
        observed_deployment(resource_version=None), image_for_tag("2.0.0")
    )
    assert "metadata" not in patch
