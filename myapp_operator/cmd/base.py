"""
Base class for the operator's subcommands
"""

# Standard
import abc
import argparse


class CmdBase(abc.ABC):
    """A subcommand is named by its class and documented by its module
    docstring. Subclasses add their own arguments and implement cmd.
    """

    # The name of the subcommand on the command line
    name: str = ""

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        """Register this command with the central parser

        Returns:
            parser:  argparse.ArgumentParser
                The subcommand's parser
        """
        assert self.name, f"{self.__class__.__name__} has no command name"
        parser = subparsers.add_parser(self.name, help=self.__doc__)
        self.add_args(parser)
        return parser

    def add_args(self, parser: argparse.ArgumentParser):
        """Add the command specific arguments. There are none by default."""

    @abc.abstractmethod
    def cmd(self, args: argparse.Namespace):
        """Run the command with the parsed arguments"""
