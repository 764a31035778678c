"""
This module implements custom exceptions
"""

# Standard
from enum import Enum
from typing import List, Optional

## Base Error ##################################################################


class WebsiteOperatorError(Exception):
    """Base class for all website_operator exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error signals a failure that
        is not expected to resolve itself on a subsequent reconciliation
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class FatalError(WebsiteOperatorError):
    """A FatalError is one that indicates an unexpected, and likely
    unrecoverable, failure during a reconciliation.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(FatalError):
    """Exception caused during usage of user-provided configuration"""


class ClusterError(FatalError):
    """Exception caused when a cluster operation fails in an unexpected way"""


class InvalidReason(Enum):
    """Structured reasons why the cluster rejected a resource as invalid"""

    NODE_PORT_ALLOCATED = "NodePortAllocated"
    UNKNOWN = "Unknown"


class InvalidSpecError(FatalError):
    """Exception raised when the cluster rejects a resource definition. The
    reason is classified where the rejection is received so that callers can
    branch on it without looking at the message.
    """

    def __init__(
        self,
        message: str = "",
        reason: InvalidReason = InvalidReason.UNKNOWN,
        causes: Optional[List[dict]] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.causes = causes or []


class TeardownError(FatalError):
    """Exception aggregating every failed delete from a single teardown"""

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        super().__init__("\n".join(str(err) for err in self.errors))


## Expected Errors #############################################################


class ExpectedError(WebsiteOperatorError):
    """An ExpectedError is one that indicates an expected failure condition
    that may cause a reconciliation to terminate, but is expected to resolve in
    a subsequent reconciliation.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class AlreadyExistsError(ExpectedError):
    """Exception raised when creating an object that already exists"""


class ConflictError(ExpectedError):
    """Exception raised when a write raced with another writer"""


class PreconditionError(ExpectedError):
    """Exception caused when an expected precondition in the cluster is not
    met.
    """


class ReconcileCancelledError(ExpectedError):
    """Exception raised when a reconciliation is cancelled by its caller"""


## Assertions ##################################################################


def assert_precondition(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a PreconditionError. This
    should be used when reconciliation requires that a precondition is met
    before continuing.
    """
    if not condition:
        raise PreconditionError(message)


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating the library config.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when an operation in the cluster (such as fetching a resource
    handle) must succeed.
    """
    if not condition:
        raise ClusterError(message)
