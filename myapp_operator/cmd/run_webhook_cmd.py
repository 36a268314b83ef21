"""
Serve the MyApp admission webhook
"""

# Standard
import argparse

# First Party
import alog

# Local
from .. import config
from ..metrics import PrometheusMetrics
from ..webhook import make_webhook_app, run_webhook_server
from .base import CmdBase

log = alog.use_channel("MAIN")


class RunWebhookCmd(CmdBase):
    __doc__ = __doc__

    name = "webhook"

    def cmd(self, args: argparse.Namespace):
        metrics = PrometheusMetrics(version=config.operator_version)
        app = make_webhook_app(
            metrics,
            controller_name=config.controller_name,
            default_resources=dict(config.default_resources),
        )
        run_webhook_server(app)
