"""Types for ssh-agent-setup"""

import os
from enum import Enum
from typing import Union, NamedTuple

StrPath = Union[str, os.PathLike[str]]

class RunConfig(NamedTuple):
    """Options for a single run, fixed once the arguments are parsed"""
    mute: bool = False
    strict: bool = False
    export: bool = False
    debug: bool = False

class AgentStatus(Enum):
    """Outcome of making sure an agent is available"""
    ALREADY_RUNNING = "already running"
    STARTED = "started"
    FAILED = "failed"

class LoadStatus(Enum):
    """Outcome of loading keys from the key directory"""
    LOADED = "loaded"
    ALREADY_LOADED = "already loaded"
    NONE_ADDED = "none added"
    NO_DIRECTORY = "no directory"
