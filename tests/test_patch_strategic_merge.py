"""
Test the patch_strategic_merge implementation
"""

# Third Party
import pytest

# First Party
import alog

# Local
from website_operator.patch_strategic_merge import patch_strategic_merge
from website_operator.test_helpers.helpers import configure_logging

configure_logging()

log = alog.use_channel("TEST")

## Helpers #####################################################################

MERGE_KEYS = {"Pod.spec.containers": "name"}


def sample_pod(containers=None):
    return {
        "kind": "Pod",
        "apiVersion": "v1",
        "metadata": {"name": "foo"},
        "spec": {"containers": containers or []},
    }


def pod_psm_body(containers=None):
    return {"spec": {"containers": containers or []}}


## Tests #######################################################################

################
## Happy Path ##
################


def test_merge_by_key():
    """Make sure list elements are merged by their merge key and new elements
    are appended
    """
    obj = sample_pod([{"name": "foo", "image": "foo", "ports": [{"port": 80}]}])
    patch = pod_psm_body([{"name": "foo", "image": "new"}, {"name": "bar", "image": "bar"}])
    res = patch_strategic_merge(obj, patch, MERGE_KEYS)
    assert res["spec"]["containers"] == [
        {"name": "foo", "image": "new", "ports": [{"port": 80}]},
        {"name": "bar", "image": "bar"},
    ]


def test_dict_merge_null_deletes():
    """Make sure a null in the patch removes the key"""
    obj = sample_pod()
    obj["metadata"]["labels"] = {"a": "b", "c": "d"}
    res = patch_strategic_merge(obj, {"metadata": {"labels": {"a": None, "e": "f"}}})
    assert res["metadata"]["labels"] == {"c": "d", "e": "f"}


def test_input_not_modified():
    """Make sure neither input is changed by the patch"""
    obj = sample_pod([{"name": "foo", "image": "foo"}])
    patch = pod_psm_body([{"name": "foo", "image": "new"}])
    patch_strategic_merge(obj, patch, MERGE_KEYS)
    assert obj["spec"]["containers"][0]["image"] == "foo"
    assert patch["spec"]["containers"][0]["image"] == "new"


def test_list_without_merge_key_replaced():
    """Make sure lists with no known merge key are replaced"""
    obj = {"kind": "Foo", "spec": {"items": [1, 2, 3]}}
    res = patch_strategic_merge(obj, {"spec": {"items": [4]}}, {})
    assert res["spec"]["items"] == [4]


def test_default_merge_keys_deployment_containers():
    """Make sure the built-in merge keys merge Deployment containers by name"""
    obj = {
        "kind": "Deployment",
        "apiVersion": "apps/v1",
        "metadata": {"name": "foo"},
        "spec": {
            "template": {
                "spec": {
                    "containers": [
                        {"name": "nginx", "image": "a", "ports": [{"containerPort": 80}]}
                    ]
                }
            }
        },
    }
    patch = {"spec": {"template": {"spec": {"containers": [{"name": "nginx", "image": "b"}]}}}}
    res = patch_strategic_merge(obj, patch)
    assert res["spec"]["template"]["spec"]["containers"] == [
        {"name": "nginx", "image": "b", "ports": [{"containerPort": 80}]}
    ]


#################
## Error Cases ##
#################


def test_missing_merge_key():
    """Make sure elements without the merge key are rejected"""
    obj = sample_pod([{"name": "foo"}])
    patch = pod_psm_body([{"image": "foo"}])
    with pytest.raises(ValueError):
        patch_strategic_merge(obj, patch, MERGE_KEYS)
