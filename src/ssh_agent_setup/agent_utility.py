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
"""Utility functions for driving the OpenSSH agent tools"""

import os
import re
import shlex
import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .types import StrPath


# Well-known files in ~/.ssh that are never private keys
EXCLUDED_FILES = frozenset((
    "known_hosts",
    "known_hosts.old",
    "config",
    "authorized_keys",
    "environment",
))

PUBLIC_KEY_SUFFIX = ".pub"

# Exit status reported when the tool itself can't be found, as a shell would
COMMAND_NOT_FOUND = 127

_assignment_pattern = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=([^;\n]*);", re.M)


def run_ssh_tool(args: Sequence[str], env: Optional[Mapping[str, str]] = None) -> "subprocess.CompletedProcess[str]":
    """Runs one of the OpenSSH command line tools without raising on
    failure. A missing executable is reported as exit status 127 rather
    than an exception, so callers only ever need to check the return
    code. Standard input is inherited so that ssh-add can still ask for a
    passphrase on the terminal."""

    try:
        return subprocess.run(list(args), env=env, capture_output=True,
                              text=True, check=False)
    except FileNotFoundError:
        logging.debug("%s not found", args[0])
        return subprocess.CompletedProcess(list(args), COMMAND_NOT_FOUND, "", f"{args[0]}: command not found")

def parse_agent_env(agent_output: str) -> Dict[str, str]:
    """Returns the variable assignments from the Bourne shell commands
    printed by `ssh-agent -s`, e.g. {"SSH_AUTH_SOCK": "/tmp/ssh-xyz/agent.1",
    "SSH_AGENT_PID": "2"}. The trailing `echo Agent pid` line is ignored."""

    return {name: value.strip() for name, value in _assignment_pattern.findall(agent_output)}

def format_exports(variables: Mapping[str, str]) -> str:
    """Formats variable assignments as Bourne shell commands suitable for
    eval in the calling shell."""

    return "".join(f"{name}={shlex.quote(value)}; export {name};\n"
                   for name, value in variables.items())

def is_excluded_file(filename: str) -> bool:
    """Return True if the file name is one of the well-known non-key files."""
    return filename in EXCLUDED_FILES

def list_directory(path: StrPath) -> List[Path]:
    """Returns the entries directly under path in sorted name order. Hidden
    entries are left out. Raises OSError if the directory can't be read."""

    return [Path(path, name) for name in sorted(os.listdir(path)) if not name.startswith(".")]
