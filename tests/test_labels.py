"""
Tests for the ownership labels attached to Website children
"""

# Local
from website_operator.labels import (
    label_selector_for,
    labels_for,
    owner_name_from_labels,
)


def test_labels_for_shape():
    """Make sure the ownership labels are exactly the website and type labels"""
    assert labels_for("foo") == {"website": "foo", "type": "Website"}


def test_labels_for_fresh_dict():
    """Make sure each call returns a new dict that can be mutated freely"""
    first = labels_for("foo")
    first["extra"] = "value"
    assert labels_for("foo") == {"website": "foo", "type": "Website"}


def test_label_selector_for_name():
    """Make sure a named selector matches only that Website's children"""
    assert label_selector_for("foo") == "type=Website,website=foo"


def test_label_selector_for_all():
    """Make sure the unnamed selector matches the children of every Website"""
    assert label_selector_for() == "type=Website"


def test_owner_name_from_labels():
    """Make sure the owner can be recovered from a child's labels"""
    assert owner_name_from_labels(labels_for("foo")) == "foo"


def test_owner_name_from_labels_not_owned():
    """Make sure objects without the ownership labels have no owner"""
    assert owner_name_from_labels(None) is None
    assert owner_name_from_labels({}) is None
    assert owner_name_from_labels({"website": "foo"}) is None
    assert owner_name_from_labels({"website": "foo", "type": "Other"}) is None


def test_labels_for_deterministic():
    """Make sure the labels depend only on the name"""
    assert labels_for("site-a") == labels_for("site-a")
    assert labels_for("site-a") != labels_for("site-b")
    assert labels_for("site-a")["type"] == labels_for("site-b")["type"]
