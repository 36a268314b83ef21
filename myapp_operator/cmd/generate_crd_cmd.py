"""
Write the MyApp CustomResourceDefinition
"""

# Standard
import argparse
import sys

# First Party
import alog

# Local
from ..crd import render_crd
from .base import CmdBase

log = alog.use_channel("MAIN")


class GenerateCrdCmd(CmdBase):
    __doc__ = __doc__

    name = "generate-crd"

    def add_args(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "--output",
            "-o",
            default=None,
            help="File to write the CRD to. Printed to stdout if not given.",
        )

    def cmd(self, args: argparse.Namespace):
        crd_yaml = render_crd(args.output)
        if not args.output:
            sys.stdout.write(crd_yaml)
