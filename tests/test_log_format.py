"""
Tests for the custom json log formatter
"""

# Standard
from unittest import mock
import json
import logging

# First Party
from alog import AlogJsonFormatter

# Local
from website_operator import log_format
from website_operator.managed_object import ResourceIdentity
from website_operator.test_helpers.helpers import library_config

## Helpers #####################################################################


def make_record(**extra):
    record = logging.LogRecord(
        name="TEST",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    for key, val in extra.items():
        setattr(record, key, val)
    return record


## Tests #######################################################################


def test_formatter_adds_identity():
    """Make sure the Website identity and reconciliation id are logged"""
    formatter = log_format.WebsiteJsonFormatter(
        ResourceIdentity(namespace="ns", name="site-a"), "abc123"
    )
    logged = json.loads(formatter.format(make_record()))
    assert logged["namespace"] == "ns"
    assert logged["resourceName"] == "site-a"
    assert logged["reconciliationId"] == "abc123"
    assert logged["message"] == "hello world"
    assert "thread" in logged


def test_formatter_record_identity_wins():
    """Make sure an identity attached to the record overrides the default"""
    formatter = log_format.WebsiteJsonFormatter(
        ResourceIdentity(namespace="ns", name="site-a")
    )
    record = make_record(identity=ResourceIdentity(namespace="other", name="site-b"))
    logged = json.loads(formatter.format(record))
    assert logged["namespace"] == "other"
    assert logged["resourceName"] == "site-b"
    assert "reconciliationId" not in logged


def test_formatter_without_identity():
    """Make sure records without any identity still format"""
    logged = json.loads(log_format.WebsiteJsonFormatter().format(make_record()))
    assert "namespace" not in logged
    assert "resourceName" not in logged


def test_configure_logging_json():
    """Make sure the json formatter is installed when configured"""
    identity = ResourceIdentity(namespace="ns", name="site-a")
    with library_config(log_json=True), mock.patch("alog.configure") as configure:
        log_format.configure_logging(identity, "abc123")
    formatter = configure.call_args.kwargs["formatter"]
    assert isinstance(formatter, log_format.WebsiteJsonFormatter)
    assert isinstance(formatter, AlogJsonFormatter)
    assert formatter.identity == identity
    assert formatter.reconciliation_id == "abc123"


def test_configure_logging_pretty():
    """Make sure the pretty formatter is used when json is off"""
    with library_config(log_json=False), mock.patch("alog.configure") as configure:
        log_format.configure_logging()
    assert configure.call_args.kwargs["formatter"] == "pretty"


def test_configure_logging_keeps_handler():
    """Make sure the current root handler is reused"""
    handler = logging.StreamHandler()
    with mock.patch.object(logging.root, "handlers", [handler]), mock.patch(
        "alog.configure"
    ) as configure:
        log_format.configure_logging()
    assert configure.call_args.kwargs["handler_generator"]() is handler
