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
"""KeyLoader class for ssh-agent-setup"""

import os
import logging
from pathlib import Path
from typing import List, Set
from .agent import SSHAgent
from .agent_utility import list_directory, is_excluded_file, PUBLIC_KEY_SUFFIX
from .types import LoadStatus, StrPath

__all__ = ["KeyLoader"]

class KeyLoader():
    """Loads the private keys found directly under ssh_dir into an agent."""
    def __init__(self, agent: SSHAgent, ssh_dir: StrPath = "~/.ssh"):

        self.agent = agent
        self.ssh_dir = Path(os.path.expanduser(ssh_dir))

        # Names of keys the agent accepted during this run
        self.loaded: List[str] = []

    @property
    def keys_added(self) -> int:
        """Number of keys loaded during this run."""
        return len(self.loaded)

    def find_candidates(self) -> List[Path]:
        """Return the files under ssh_dir that might be private keys.
        Raises OSError if the directory can't be read."""

        candidates = []
        seen: Set[str] = set()

        for key_file in list_directory(self.ssh_dir):
            # Follows symlinks pointing at regular files
            if not key_file.is_file():
                continue

            if key_file.name.endswith(PUBLIC_KEY_SUFFIX):
                continue

            if is_excluded_file(key_file.name):
                continue

            # A listing never repeats a name, but don't try the same file twice
            if key_file.name in seen:
                continue
            seen.add(key_file.name)

            candidates.append(key_file)

        return candidates

    def load_keys(self) -> LoadStatus:
        """Offer every candidate file to the agent and report the result.

        Nothing is loaded if the agent already holds any key at all, even
        when some of the keys in ssh_dir are not among them."""

        if not self.ssh_dir.is_dir():
            logging.error("SSH directory %s does not exist", self.ssh_dir)
            return LoadStatus.NO_DIRECTORY

        if self.agent.has_keys():
            logging.info("SSH keys already loaded in agent")
            return LoadStatus.ALREADY_LOADED

        logging.info("Loading SSH keys from %s...", self.ssh_dir)

        try:
            candidates = self.find_candidates()
        except OSError as e:
            logging.error("Could not read SSH directory %s: %s", self.ssh_dir, e.strerror or e)
            return LoadStatus.NO_DIRECTORY

        for key_file in candidates:
            # Files that aren't usable keys are skipped without comment
            if self.agent.add_key(key_file):
                logging.info("✓ Added SSH key: %s", key_file.name)
                self.loaded.append(key_file.name)

        if self.keys_added == 0:
            # Keys may have reached the agent from elsewhere in the meantime
            if not self.agent.has_keys():
                logging.info("No SSH keys found or added from %s", self.ssh_dir)
            return LoadStatus.NONE_ADDED

        logging.info("Successfully loaded %d SSH key(s)", self.keys_added)
        return LoadStatus.LOADED
