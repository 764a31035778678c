"""
Custom logging formats that contain more detailed website operator logs
"""

# Standard
from typing import Optional
import logging

# First Party
from alog import AlogJsonFormatter
import alog

# Local
from . import config
from .managed_object import ResourceIdentity


class WebsiteJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the identifiers
    of the Website being reconciled and the reconciliationId
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "namespace",
        "resourceName",
        "reconciliationId",
    ]

    def __init__(
        self,
        identity: Optional[ResourceIdentity] = None,
        reconciliation_id: Optional[str] = None,
    ):
        super().__init__()
        self.identity = identity
        self.reconciliation_id = reconciliation_id

    def format(self, record):
        if self.reconciliation_id:
            record.reconciliationId = self.reconciliation_id

        if identity := getattr(record, "identity", self.identity):
            record.namespace = identity.namespace
            record.resourceName = identity.name

        return super().format(record)


def configure_logging(
    identity: Optional[ResourceIdentity] = None,
    reconciliation_id: Optional[str] = None,
):
    """(Re)configure alog from the library config. When json logging is
    enabled, the given Website identity and reconciliation id are attached to
    every record.
    """
    # Keep the current handler so that output keeps going to the same place
    handler_generator = None
    if logging.root.handlers:
        old_handler = logging.root.handlers[0]

        def handler_generator():
            return old_handler

    alog.configure(
        default_level=config.log_level,
        filters=config.log_filters,
        formatter=WebsiteJsonFormatter(identity, reconciliation_id)
        if config.log_json
        else "pretty",
        thread_id=config.log_thread_id,
        handler_generator=handler_generator,
    )
