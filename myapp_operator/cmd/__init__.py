"""
This module holds all of the command classes for the operator's main entrypoint
"""

# Local
from .base import CmdBase
from .generate_crd_cmd import GenerateCrdCmd
from .run_controller_cmd import RunControllerCmd
from .run_webhook_cmd import RunWebhookCmd
