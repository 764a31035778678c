"""
The WebsiteWatchManager turns cluster change notifications into reconciliation
requests. It watches Websites and their children, maps each event back to the
owning Website and feeds a single worker thread that runs the reconciler.
"""

# Standard
from typing import Dict, List, Optional
import queue
import threading

# First Party
import alog

# Local
from . import config
from .constants import WEBSITE_API_VERSION, WEBSITE_KIND
from .deploy_manager import DeployManagerBase, KubeWatchEvent
from .labels import label_selector_for, owner_name_from_labels
from .log_format import configure_logging
from .managed_object import ManagedObject, ResourceIdentity
from .reconcile import ReconciliationResult, WebsiteReconciler
from .state_fetcher import ChildKind

log = alog.use_channel("WATCH")

# Seconds the worker blocks on the queue before re-checking for shutdown
QUEUE_POLL_SECONDS = 1


class WebsiteWatchManager:
    """A WebsiteWatchManager owns the watch, worker and resync threads for a
    single operator process. Reconciliations run one at a time on the worker
    thread and identities that are already waiting to be reconciled are not
    queued a second time.
    """

    ## Interface ###############################################################

    def __init__(
        self,
        deploy_manager: DeployManagerBase,
        reconciler: Optional[WebsiteReconciler] = None,
        namespace_list: Optional[List[str]] = None,
    ):
        """Construct with the deploy manager used for watches and reconciles

        Args:
            deploy_manager:  DeployManagerBase
                The handle to the cluster
            reconciler:  Optional[WebsiteReconciler]
                The reconciler to run. One is built on the deploy_manager if not
                given.
            namespace_list:  Optional[List[str]]
                The namespaces to watch. If not given, the comma separated
                watch_namespace config is used and an empty value watches the
                whole cluster.
        """
        self.deploy_manager = deploy_manager
        self.reconciler = reconciler or WebsiteReconciler(deploy_manager)
        if namespace_list is None:
            namespace_list = [
                namespace.strip()
                for namespace in (config.watch_namespace or "").split(",")
                if namespace.strip()
            ]
        self.namespace_list = namespace_list or [None]

        self.shutdown = threading.Event()
        self._queue = queue.Queue()
        self._pending = set()
        # Guards both the pending set and the retry timers
        self._pending_lock = threading.Lock()
        self._threads = []
        self._worker = None
        self._timers: Dict[ResourceIdentity, threading.Timer] = {}

    def watch(self) -> bool:
        """Start all watch threads along with the worker and resync threads

        Returns:
            success:  bool
                True if the threads were started, False if they were already
                running
        """
        if self._threads:
            log.warning("Cannot watch multiple times!")
            return False

        for namespace in self.namespace_list:
            self._start_thread(
                f"watch-{WEBSITE_KIND}-{namespace or 'all'}",
                self._watch_loop,
                WEBSITE_KIND,
                WEBSITE_API_VERSION,
                namespace,
                None,
            )
            for child_kind in ChildKind:
                self._start_thread(
                    f"watch-{child_kind.kind}-{namespace or 'all'}",
                    self._watch_loop,
                    child_kind.kind,
                    child_kind.api_version,
                    namespace,
                    label_selector_for(),
                )

        self._worker = self._start_thread("reconcile-worker", self._reconcile_loop)
        if config.resync_period_seconds:
            self._start_thread("resync", self._resync_loop)
        log.info("Started %d watch manager threads", len(self._threads))
        return True

    def wait(self):
        """Block until the watch manager is stopped"""
        self.shutdown.wait()
        if self._worker is not None:
            self._worker.join()

    def stop(self):
        """Stop all threads. An in flight reconcile is cancelled before its next
        cluster call.
        """
        log.info("Stopping watch manager")
        self.shutdown.set()
        self._queue.put(None)
        with self._pending_lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if self._worker is not None and self._worker is not threading.current_thread():
            self._worker.join()

    def enqueue(self, identity: ResourceIdentity) -> bool:
        """Request a reconcile of the given Website

        Returns:
            queued:  bool
                False if the identity was already waiting to be reconciled
        """
        with self._pending_lock:
            if identity in self._pending:
                log.debug3("[%s] already pending", identity)
                return False
            self._pending.add(identity)
        log.debug2("Enqueuing [%s]", identity)
        self._queue.put(identity)
        return True

    def resync(self):
        """Enqueue every Website in the watched namespaces"""
        for namespace in self.namespace_list:
            websites = self.deploy_manager.filter_objects_current_state(
                kind=WEBSITE_KIND,
                namespace=namespace,
                api_version=WEBSITE_API_VERSION,
            )
            log.debug("Resyncing %d %s(s) in [%s]", len(websites), WEBSITE_KIND, namespace)
            for website in websites:
                self.enqueue(ManagedObject(website).identity)

    def run_reconcile(self, identity: ResourceIdentity) -> ReconciliationResult:
        """Run one reconcile of the given Website on the calling thread and
        schedule a retry if it failed
        """
        reconciliation_id = WebsiteReconciler.generate_id()
        configure_logging(identity, reconciliation_id)
        result = self.reconciler.reconcile(
            identity.namespace,
            identity.name,
            cancel_event=self.shutdown,
            reconciliation_id=reconciliation_id,
        )
        if result.requeue and not result.cancelled:
            self._requeue_later(identity)
        return result

    @staticmethod
    def identity_for_event(event: KubeWatchEvent) -> Optional[ResourceIdentity]:
        """Get the Website that should be reconciled for a watch event, or None
        if the event does not belong to a Website
        """
        resource = event.resource
        if resource.kind == WEBSITE_KIND:
            name = resource.name
        else:
            name = owner_name_from_labels(resource.labels)
        if not name:
            return None
        return ResourceIdentity(namespace=resource.namespace, name=name)

    ## Implementation Details ##################################################

    def _start_thread(self, name: str, target, *args) -> threading.Thread:
        thread = threading.Thread(name=name, target=target, args=args, daemon=True)
        thread.start()
        self._threads.append(thread)
        return thread

    def _watch_loop(
        self,
        kind: str,
        api_version: str,
        namespace: Optional[str],
        label_selector: Optional[str],
    ):
        while not self.shutdown.is_set():
            try:
                for event in self.deploy_manager.watch_objects(
                    kind=kind,
                    api_version=api_version,
                    namespace=namespace,
                    label_selector=label_selector,
                ):
                    if self.shutdown.is_set():
                        return
                    log.debug3(
                        "Received %s event for %s/%s",
                        event.type.value,
                        kind,
                        event.resource.name,
                    )
                    identity = self.identity_for_event(event)
                    if identity is not None:
                        self.enqueue(identity)
            except Exception as err:  # pylint: disable=broad-except
                log.warning(
                    "Watch on %s/%s failed, restarting: %s",
                    api_version,
                    kind,
                    err,
                    exc_info=True,
                )
                self.shutdown.wait(config.requeue_after_seconds)

    def _reconcile_loop(self):
        while not self.shutdown.is_set():
            try:
                identity = self._queue.get(timeout=QUEUE_POLL_SECONDS)
            except queue.Empty:
                continue
            if identity is None:
                break

            with self._pending_lock:
                self._pending.discard(identity)
            result = self.run_reconcile(identity)
            log.info(
                "Reconcile of [%s] finished: %s", identity, result.state.value
            )
        log.debug("Reconcile worker stopped")

    def _resync_loop(self):
        while not self.shutdown.wait(config.resync_period_seconds):
            try:
                self.resync()
            except Exception as err:  # pylint: disable=broad-except
                log.warning("Resync failed: %s", err, exc_info=True)

    def _requeue_later(self, identity: ResourceIdentity):
        """Schedule a single delayed enqueue of the identity. A retry that is
        already scheduled is kept.
        """
        with self._pending_lock:
            if identity in self._timers:
                log.debug3("[%s] retry already scheduled", identity)
                return
            log.debug("Requeuing [%s] in %ss", identity, config.requeue_after_seconds)
            timer = threading.Timer(
                config.requeue_after_seconds, self._fire_requeue, args=[identity]
            )
            timer.daemon = True
            self._timers[identity] = timer
            timer.start()

    def _fire_requeue(self, identity: ResourceIdentity):
        with self._pending_lock:
            self._timers.pop(identity, None)
        self.enqueue(identity)
