"""
This is the main entrypoint command for running the controller
"""

# Standard
from typing import Optional
import argparse
import os
import signal
import threading
import time

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config
from ..children import child_refs
from ..controller import MyAppController
from ..health import HealthServerThread, make_health_app
from ..metrics import PrometheusMetrics
from ..resource import MyAppResource
from ..status import ResourceState
from ..store import DryRunObjectStore, KubeObjectStore, ObjectStoreBase
from .base import CmdBase

log = alog.use_channel("MAIN")

# Seconds a dry run waits for the applied CR to settle
DRY_RUN_SETTLE_TIMEOUT = 30


class RunControllerCmd(CmdBase):
    __doc__ = __doc__

    name = "run"

    ## Interface ##

    def add_args(self, parser: argparse.ArgumentParser):
        runtime_args = parser.add_argument_group("Runtime Configuration")
        runtime_args.add_argument(
            "--cr",
            "-c",
            default=None,
            help="(dry run) A CR manifest yaml to apply directly",
        )

    def cmd(self, args: argparse.Namespace):
        # Validate args
        assert args.cr is None or (
            config.dry_run and os.path.isfile(args.cr)
        ), "Can only specify --cr with dry run and it must point to a valid file"

        store = self._setup_store()
        metrics = PrometheusMetrics(version=config.operator_version)
        controller = MyAppController(
            store,
            metrics=metrics,
            namespace=config.watch_namespace or None,
            max_workers=config.max_concurrent_reconciles,
        )

        health_server = None
        if config.metrics.enabled:
            health_server = HealthServerThread(
                make_health_app(metrics, controller.is_ready),
                port=config.metrics.port,
            )
            health_server.start_thread()

        # Register the signal handler to stop the controller
        stop_event = threading.Event()

        def do_stop(*_, **__):  # pragma: no cover
            stop_event.set()

        signal.signal(signal.SIGINT, do_stop)
        signal.signal(signal.SIGTERM, do_stop)

        controller.start()
        try:
            if args.cr:
                self._apply_cr(store, args.cr)
            else:
                stop_event.wait()
        finally:
            controller.stop()
            if health_server is not None:
                health_server.stop_thread()

        # All done!
        log.info("SHUTTING DOWN")

    ## Impl ##

    @staticmethod
    def _setup_store() -> ObjectStoreBase:
        if config.dry_run:
            log.info("Running DRY RUN")
            return DryRunObjectStore()
        return KubeObjectStore()

    @staticmethod
    def _apply_cr(
        store: DryRunObjectStore,
        cr_path: str,
        timeout: float = DRY_RUN_SETTLE_TIMEOUT,
    ) -> Optional[MyAppResource]:
        """Create the CR in the dry run store and wait for it to settle"""
        log.info("Applying CR [%s]", cr_path)
        with open(cr_path, encoding="utf-8") as handle:
            cr_manifest = yaml.safe_load(handle)
        cr_manifest.setdefault("metadata", {}).setdefault("namespace", "default")
        log.debug3(cr_manifest)
        store.create(cr_manifest)

        resource = MyAppResource(cr_manifest)
        end_time = time.time() + timeout
        while time.time() < end_time:
            current = store.get(resource.ref)
            if current is not None and MyAppResource(current).state in [
                ResourceState.RUNNING.value,
                ResourceState.FAILED.value,
            ]:
                resource = MyAppResource(current)
                break
            time.sleep(0.1)
        else:
            log.warning("Timed out waiting for %s to settle", resource)
            return None

        log.info("%s settled in state %s", resource, resource.state)
        for ref in child_refs(resource):
            log.info("%s exists: %s", ref, store.get(ref) is not None)
        return resource
