#!/usr/bin/env python3
# Copyright 2023 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0
"""Starts ssh-agent and loads private keys from ~/.ssh"""

import argparse
import logging
import sys
import textwrap
from typing import List, NoReturn, Optional
from ssh_agent_setup import __version__
from ssh_agent_setup.agent import SSHAgent
from ssh_agent_setup.keyloader import KeyLoader
from ssh_agent_setup.types import AgentStatus, LoadStatus, RunConfig

PROG = "ssh-agent-setup"

HELP_FLAGS = ("-h", "--help")
VERSION_FLAGS = ("-v", "--version")
KNOWN_SWITCHES = ("-m", "--mute", *HELP_FLAGS, *VERSION_FLAGS, "--strict", "--export", "--debug")

# Short switches that may be combined, as in -mh
SHORT_SWITCHES = "mhv"


class UsageParser(argparse.ArgumentParser):
    """Reports usage errors as an error message followed by the full help
    text, with exit status 1."""

    def error(self, message: str) -> NoReturn:
        logging.error("%s", message)
        self.print_help(sys.stderr)
        sys.exit(1)


def build_parser() -> UsageParser:
    """Construct the argument parser. Help and version are plain switches
    so that they are handled in command line order with unknown options."""

    parser = UsageParser(
        prog=PROG,
        add_help=False,
        allow_abbrev=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent("""\
            Automatically starts ssh-agent (if not running) and loads all SSH private
            keys from the ~/.ssh directory. Skips public keys (.pub files) and common
            SSH configuration files."""),
        epilog=textwrap.dedent(f"""\
            examples:
              # Load SSH keys with output
              {PROG}

              # Load SSH keys silently
              {PROG} --mute

              # Start an agent and export it into the current shell
              eval "$({PROG} --export)"

            notes:
              - Only processes files that appear to be SSH private keys
              - Automatically excludes .pub files and SSH config files
              - Keys are only loaded into an agent that holds no keys yet"""))

    parser.add_argument("-m", "--mute", action="store_true",
                        help="Suppress non-error output messages")
    parser.add_argument("-h", "--help", action="store_true",
                        help="Display this help message and exit")
    parser.add_argument("-v", "--version", action="store_true",
                        help="Display version information and exit")
    parser.add_argument("--strict", action="store_true",
                        help="""Exit with status 1 if the agent can't be
                        started or the key directory can't be read""")
    parser.add_argument("--export", action="store_true",
                        help="""Print shell commands exporting a newly
                        started agent, for use with eval. Messages go to
                        stderr.""")
    parser.add_argument("--debug", action="store_true",
                        help="Log why individual files were not added")

    return parser


def version_text() -> str:
    """Return the version string."""
    return f"{PROG} version {__version__}"


def show_help(parser: argparse.ArgumentParser) -> NoReturn:
    """Print help to stdout and exit successfully."""
    parser.print_help(sys.stdout)
    sys.exit(0)


def show_version() -> NoReturn:
    """Print the version to stdout and exit successfully."""
    print(version_text())
    sys.exit(0)


def split_switches(token: str) -> List[str]:
    """Expand combined short switches such as -mh into -m -h. Any other
    token is returned unchanged."""
    if token.startswith("-") and not token.startswith("--") and len(token) > 2 \
            and all(letter in SHORT_SWITCHES for letter in token[1:]):
        return [f"-{letter}" for letter in token[1:]]
    return [token]


def parse_arguments(argv: List[str]) -> RunConfig:
    """Parse the command line. Prints help or version and exits if asked
    to. Tokens are considered in order, so whichever of an unknown option,
    help or version comes first decides the outcome. Only exact switch
    spellings are known; --mute=1 or -hx is an unknown option."""

    parser = build_parser()

    for token in argv:
        for switch in split_switches(token):
            if switch not in KNOWN_SWITCHES:
                parser.error(f"Unknown option: {token}")
            if switch in HELP_FLAGS:
                show_help(parser)
            if switch in VERSION_FLAGS:
                show_version()

    args = parser.parse_args(argv)

    return RunConfig(mute=args.mute, strict=args.strict, export=args.export, debug=args.debug)


def configure_logging(config: RunConfig) -> None:
    """Informational messages go to stdout unless muted, or to stderr when
    stdout is reserved for exports. Warnings and errors always go to
    stderr."""

    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setLevel(logging.WARNING)
    error_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handlers: List[logging.Handler] = [error_handler]

    if not config.mute:
        info_handler = logging.StreamHandler(sys.stderr if config.export else sys.stdout)
        info_handler.addFilter(lambda record: record.levelno < logging.WARNING)
        info_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(info_handler)

    logging.basicConfig(level=logging.DEBUG if config.debug else logging.INFO,
                        handlers=handlers, force=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Make sure an agent is running and load keys into it. Returns the
    exit status."""

    if argv is None:
        argv = sys.argv[1:]

    # Usage errors must be reported before the real options are known
    configure_logging(RunConfig())
    config = parse_arguments(argv)
    configure_logging(config)

    agent = SSHAgent()

    # Without --strict a failed start is not fatal; ssh-add will just fail
    if agent.ensure_running() is AgentStatus.FAILED and config.strict:
        return 1

    load_status = KeyLoader(agent).load_keys()

    if config.export:
        sys.stdout.write(agent.exports())

    if load_status is LoadStatus.NO_DIRECTORY and config.strict:
        return 1

    logging.info("SSH agent setup complete")
    return 0

if __name__ == "__main__":
    sys.exit(main())
