#!/usr/bin/env python
"""
The main module provides the executable entrypoint for the MyApp operator
"""

# Standard
from typing import Dict, List, Tuple
import argparse

# First Party
import aconfig
import alog

# Local
from .cmd import CmdBase, GenerateCrdCmd, RunControllerCmd, RunWebhookCmd
from .config import library_config
from .log_format import MyAppJsonFormatter

## Constants ###################################################################

log = alog.use_channel("MAIN")

## Helpers #####################################################################


def add_library_config_args(parser, config_obj=None, path=None) -> Dict[str, List[str]]:
    """Automatically add args for all elements of the library config"""
    path = path or []
    setters = {}
    config_obj = library_config if config_obj is None else config_obj
    for key, val in config_obj.items():
        sub_path = path + [key]

        # If this is a nested arg with values, recurse
        if isinstance(val, aconfig.AttributeAccessDict) and val:
            setters.update(
                add_library_config_args(parser, config_obj=val, path=sub_path)
            )
            continue

        # Mappings without values can't be set from the command line
        if isinstance(val, dict):
            continue

        arg_name = ".".join(sub_path)
        dest_name = "_".join(sub_path)
        kwargs = {
            "default": val,
            "dest": dest_name,
            "help": f"Library config override for {arg_name} (see myapp_operator.config)",
        }
        if isinstance(val, list):
            kwargs["nargs"] = "*"
        elif isinstance(val, bool):
            kwargs["action"] = "store_true"
        elif val is not None:
            kwargs["type"] = type(val)

        if (
            f"--{arg_name}"
            not in parser._option_string_actions  # pylint: disable=protected-access
        ):
            parser.add_argument(f"--{arg_name}", **kwargs)
            setters[dest_name] = sub_path
    return setters


def update_library_config(args, setters):
    """Update the library config values based on the parsed arguments"""
    for dest_name, config_path in setters.items():
        config_obj = library_config
        while len(config_path) > 1:
            config_obj = config_obj[config_path[0]]
            config_path = config_path[1:]
        config_obj[config_path[0]] = getattr(args, dest_name)


def add_command(
    subparsers: argparse._SubParsersAction,
    cmd: CmdBase,
) -> Tuple[argparse.ArgumentParser, Dict[str, List[str]]]:
    """Add the subparser and set up the default fun call"""
    parser = cmd.add_subparser(subparsers)
    parser.set_defaults(func=cmd.cmd)
    library_args = parser.add_argument_group("Library Configuration")
    library_config_setters = add_library_config_args(library_args)
    return parser, library_config_setters


## Main ########################################################################


def main(argv=None):
    """The main module provides the executable entrypoint for the operator"""
    parser = argparse.ArgumentParser(description=__doc__)

    # Add the subcommands
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    run_parser, library_config_setters = add_command(subparsers, RunControllerCmd())
    add_command(subparsers, RunWebhookCmd())
    add_command(subparsers, GenerateCrdCmd())

    # Use a preliminary parser to check for the presence of a command and fall
    # back to the default command if not found
    check_parser = argparse.ArgumentParser(add_help=False)
    check_parser.add_argument("command", nargs="?")
    check_args, _ = check_parser.parse_known_args(argv)
    if check_args.command not in subparsers.choices:
        args = run_parser.parse_args(argv)
    else:
        args = parser.parse_args(argv)

    # Provide overrides to the library configs
    update_library_config(args, library_config_setters)

    # Reconfigure logging
    alog.configure(
        default_level=library_config.log_level,
        filters=library_config.log_filters,
        formatter=MyAppJsonFormatter() if library_config.log_json else "pretty",
        thread_id=library_config.log_thread_id,
    )

    # Run the command's function
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
