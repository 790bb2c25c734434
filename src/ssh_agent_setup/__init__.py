"""
Starts ssh-agent if one isn't already available and loads the private keys
found in ~/.ssh into it.
"""
from .agent import SSHAgent
from .keyloader import KeyLoader

__version__ = "1.0.0"

__all__ = ["SSHAgent", "KeyLoader", "__version__"]
