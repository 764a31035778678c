"""
Tests for the desired state builders of the Website children
"""

# Local
from website_operator.resources import build_deployment, build_service, image_for_tag


def test_image_for_tag():
    """Make sure the tag is appended to the fixed repository"""
    assert image_for_tag("1.0.0") == "abangser/todo-local-storage:1.0.0"


def test_image_for_tag_empty():
    """Make sure an empty tag is passed through without validation"""
    assert image_for_tag("") == "abangser/todo-local-storage:"


def test_build_deployment():
    """Make sure the Deployment matches the expected manifest exactly"""
    labels = {"website": "foo", "type": "Website"}
    assert build_deployment("foo", "bar", "1.0.0") == {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "foo", "namespace": "bar", "labels": labels},
        "spec": {
            "replicas": 2,
            "selector": {"matchLabels": labels},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "containers": [
                        {
                            "name": "nginx",
                            "image": "abangser/todo-local-storage:1.0.0",
                            "ports": [{"containerPort": 80}],
                        }
                    ]
                },
            },
        },
    }


def test_build_service():
    """Make sure the Service matches the expected manifest exactly"""
    labels = {"website": "foo", "type": "Website"}
    assert build_service("foo", "bar") == {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "foo", "namespace": "bar", "labels": labels},
        "spec": {
            "type": "NodePort",
            "ports": [{"port": 80, "nodePort": 31000}],
            "selector": labels,
        },
    }


def test_build_deployment_independent():
    """Make sure mutating one build result does not leak into another"""
    first = build_deployment("foo", "bar", "1.0.0")
    first["metadata"]["labels"]["website"] = "changed"
    first["spec"]["template"]["spec"]["containers"].append({"name": "sidecar"})
    second = build_deployment("foo", "bar", "1.0.0")
    assert second["metadata"]["labels"]["website"] == "foo"
    assert len(second["spec"]["template"]["spec"]["containers"]) == 1
    assert first["spec"]["selector"]["matchLabels"]["website"] == "foo"
