"""
MyApp operator: admission pipeline and reconciliation engine for the MyApp
custom resource
"""

# Local
from . import config
from .admission import mutate, validate
from .controller import MyAppController
from .metrics import MetricsSinkBase, NoOpMetrics, PrometheusMetrics
from .reconcile import ReconcileManager, ReconcileState, classify
from .result import ReconciliationResult, RequeueParams
from .store import DryRunObjectStore, KubeObjectStore, ObjectRef
