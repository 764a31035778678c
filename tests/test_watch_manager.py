"""
Tests for the WebsiteWatchManager
"""

# Standard
from unittest import mock
import time

# Third Party
import pytest

# First Party
import alog

# Local
from website_operator.deploy_manager import (
    DryRunDeployManager,
    KubeEventType,
    KubeWatchEvent,
)
from website_operator.exceptions import ClusterError
from website_operator.managed_object import ManagedObject, ResourceIdentity
from website_operator.reconcile import ReconcileState
from website_operator.resources import build_deployment, build_service
from website_operator.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_INSTANCE_NAME,
    TEST_NAMESPACE,
    MockDeployManager,
    library_config,
    setup_website_cr,
)
from website_operator.watch_manager import WebsiteWatchManager

log = alog.use_channel("TEST")

IDENTITY = ResourceIdentity(namespace=TEST_NAMESPACE, name=TEST_INSTANCE_NAME)

## Helpers #####################################################################


@pytest.fixture(autouse=True)
def no_log_reconfigure():
    """Keep the test logging config while reconciles run"""
    with mock.patch("website_operator.watch_manager.configure_logging"):
        yield


def wait_for(condition, timeout=10):
    end = time.time() + timeout
    while time.time() < end:
        if condition():
            return True
        time.sleep(0.05)
    return False


def make_event(manifest, event_type=KubeEventType.ADDED):
    return KubeWatchEvent(type=event_type, resource=ManagedObject(manifest))


def get_image(deploy_manager):
    deployment = deploy_manager.get_object_current_state(
        "Deployment", TEST_INSTANCE_NAME, TEST_NAMESPACE
    )
    if deployment is None:
        return None
    return deployment["spec"]["template"]["spec"]["containers"][0]["image"]


## Event Mapping ###############################################################


def test_identity_for_website_event():
    """Make sure Website events map to the Website itself"""
    event = make_event(setup_website_cr())
    assert WebsiteWatchManager.identity_for_event(event) == IDENTITY


@pytest.mark.parametrize(
    "child",
    [
        build_deployment(TEST_INSTANCE_NAME, TEST_NAMESPACE, "v1"),
        build_service(TEST_INSTANCE_NAME, TEST_NAMESPACE),
    ],
)
def test_identity_for_child_event(child):
    """Make sure child events map to their owning Website"""
    event = make_event(child, KubeEventType.DELETED)
    assert WebsiteWatchManager.identity_for_event(event) == IDENTITY


def test_identity_for_unowned_event():
    """Make sure objects without ownership labels are ignored"""
    event = make_event(
        {
            "kind": "Service",
            "apiVersion": "v1",
            "metadata": {"name": "other", "namespace": TEST_NAMESPACE},
        }
    )
    assert WebsiteWatchManager.identity_for_event(event) is None


## Queueing ####################################################################


def test_namespace_list_from_config():
    """Make sure the watched namespaces come from config when not given"""
    with library_config(watch_namespace=f"{TEST_NAMESPACE}, {SOME_OTHER_NAMESPACE}"):
        wm = WebsiteWatchManager(DryRunDeployManager())
    assert wm.namespace_list == [TEST_NAMESPACE, SOME_OTHER_NAMESPACE]

    with library_config(watch_namespace=""):
        wm = WebsiteWatchManager(DryRunDeployManager())
    assert wm.namespace_list == [None]


def test_enqueue_dedupes():
    """Make sure an identity already waiting is not queued again"""
    wm = WebsiteWatchManager(DryRunDeployManager())
    assert wm.enqueue(IDENTITY)
    assert not wm.enqueue(IDENTITY)
    assert wm.enqueue(ResourceIdentity(TEST_NAMESPACE, "other"))
    assert wm._queue.qsize() == 2


def test_resync():
    """Make sure resync queues every Website in the watched namespaces"""
    dm = DryRunDeployManager(
        resources=[
            setup_website_cr(name="a"),
            setup_website_cr(name="b"),
            setup_website_cr(name="c", namespace=SOME_OTHER_NAMESPACE),
        ]
    )
    wm = WebsiteWatchManager(dm, namespace_list=[TEST_NAMESPACE])
    wm.resync()
    assert wm._pending == {
        ResourceIdentity(TEST_NAMESPACE, "a"),
        ResourceIdentity(TEST_NAMESPACE, "b"),
    }


## run_reconcile ###############################################################


def test_run_reconcile_success():
    """Make sure a successful reconcile is not requeued"""
    dm = MockDeployManager(resources=[setup_website_cr()])
    wm = WebsiteWatchManager(dm)
    result = wm.run_reconcile(IDENTITY)
    assert result.state is ReconcileState.DONE
    assert not wm._timers


@pytest.mark.timeout(10)
def test_run_reconcile_failure_requeued():
    """Make sure a failed reconcile is queued again after the delay"""
    dm = MockDeployManager(
        resources=[setup_website_cr()],
        create_fail=ClusterError("boom"),
    )
    wm = WebsiteWatchManager(dm)
    with library_config(requeue_after_seconds=0.1):
        result = wm.run_reconcile(IDENTITY)
    assert result.state is ReconcileState.FAILED
    assert wait_for(lambda: IDENTITY in wm._pending)
    wm.stop()


@pytest.mark.timeout(10)
def test_repeated_failures_keep_one_timer():
    """Make sure repeated failures of one Website schedule a single retry and
    fired retries are released
    """
    dm = MockDeployManager(
        resources=[setup_website_cr()],
        create_fail=ClusterError("boom"),
    )
    wm = WebsiteWatchManager(dm)
    with library_config(requeue_after_seconds=1):
        for _ in range(50):
            assert wm.run_reconcile(IDENTITY).state is ReconcileState.FAILED
        assert list(wm._timers) == [IDENTITY]
        assert wait_for(lambda: not wm._timers)
    assert IDENTITY in wm._pending
    wm.stop()


def test_run_reconcile_cancelled_not_requeued():
    """Make sure a cancelled reconcile is not requeued"""
    dm = MockDeployManager(resources=[setup_website_cr()])
    wm = WebsiteWatchManager(dm)
    wm.shutdown.set()
    result = wm.run_reconcile(IDENTITY)
    assert result.cancelled
    assert not wm._timers
    dm.create.assert_not_called()


## Lifecycle ###################################################################


@pytest.mark.timeout(30)
def test_watch_end_to_end():
    """Make sure the watch manager converges, corrects drift and tears down
    in response to cluster changes
    """
    dm = DryRunDeployManager(resources=[setup_website_cr(image_tag="v1")])
    with library_config(resync_period_seconds=0):
        wm = WebsiteWatchManager(dm, namespace_list=[TEST_NAMESPACE])
        assert wm.watch()
        assert not wm.watch()
    try:
        assert wait_for(lambda: get_image(dm) is not None)
        assert get_image(dm).endswith(":v1")
        assert wait_for(
            lambda: dm.get_object_current_state(
                "Service", TEST_INSTANCE_NAME, TEST_NAMESPACE
            )
            is not None
        )

        # Change the tag
        dm.apply(setup_website_cr(image_tag="v2"))
        assert wait_for(lambda: get_image(dm).endswith(":v2"))

        # Remove the Website
        dm.delete("Website", TEST_INSTANCE_NAME, TEST_NAMESPACE)
        assert wait_for(lambda: get_image(dm) is None)
        assert wait_for(
            lambda: dm.get_object_current_state(
                "Service", TEST_INSTANCE_NAME, TEST_NAMESPACE
            )
            is None
        )
    finally:
        wm.stop()
    wm.wait()
    assert wm.shutdown.is_set()
    assert not wm._worker.is_alive()
