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
"""SSHAgent class for ssh-agent-setup"""

import os
import logging
from typing import Dict, MutableMapping, Optional
from .agent_utility import run_ssh_tool, parse_agent_env, format_exports
from .types import AgentStatus, StrPath

__all__ = ["SSHAgent"]

class SSHAgent():
    """The ssh-agent reachable from an environment. The environment
    defaults to this process's own, so variables exported by an agent
    started here are seen by every later ssh-add call."""

    def __init__(self, env: Optional[MutableMapping[str, str]] = None):
        self.env = os.environ if env is None else env

        # Variables exported by an agent started in this run
        self.started_env: Dict[str, str] = {}

    def is_running(self) -> bool:
        """True if the environment advertises an agent socket. The socket
        itself is not checked."""
        return bool(self.env.get("SSH_AUTH_SOCK"))

    def ensure_running(self) -> AgentStatus:
        """Start an agent unless the environment already points at one."""
        if self.is_running():
            logging.info("ssh-agent already running")
            return AgentStatus.ALREADY_RUNNING

        logging.info("Starting ssh-agent...")
        if self.start():
            logging.info("ssh-agent started successfully")
            return AgentStatus.STARTED

        logging.error("Failed to start ssh-agent")
        return AgentStatus.FAILED

    def start(self) -> bool:
        """Launch ssh-agent and apply the variables it prints to the
        environment. Returns False if it failed or didn't report a socket."""

        agent_process = run_ssh_tool(["ssh-agent", "-s"], env=self.env)
        if agent_process.returncode != 0:
            logging.debug("ssh-agent exited with status %d: %s",
                          agent_process.returncode, agent_process.stderr.strip())
            return False

        variables = parse_agent_env(agent_process.stdout)
        if not variables.get("SSH_AUTH_SOCK"):
            logging.debug("ssh-agent output did not include SSH_AUTH_SOCK")
            return False

        self.env.update(variables)
        self.started_env = variables
        return True

    def has_keys(self) -> bool:
        """True if the agent holds at least one identity. `ssh-add -l`
        exits 1 for an empty agent and 2 if it can't reach one."""
        return run_ssh_tool(["ssh-add", "-l"], env=self.env).returncode == 0

    def add_key(self, path: StrPath) -> bool:
        """Hand a private key file to the agent. Output from ssh-add is
        discarded; failure is expected for anything that isn't a usable key."""

        add_process = run_ssh_tool(["ssh-add", os.fspath(path)], env=self.env)
        if add_process.returncode != 0:
            logging.debug("ssh-add rejected %s: %s", path, add_process.stderr.strip())
            return False
        return True

    def exports(self) -> str:
        """Shell commands exporting the variables of an agent started in
        this run, or an empty string if none was started."""
        return format_exports(self.started_env)
