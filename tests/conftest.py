"""Shared fixtures for ssh-agent-setup tests"""

import logging
import subprocess
from pathlib import Path
import pytest

AGENT_OUTPUT = """SSH_AUTH_SOCK=/tmp/ssh-XXXXXXtest/agent.4242; export SSH_AUTH_SOCK;
SSH_AGENT_PID=4243; export SSH_AGENT_PID;
echo Agent pid 4243;
"""


class FakeSSHTools():
    """Replaces subprocess.run for ssh-agent and ssh-add. ssh-add accepts
    only the file names in valid_keys; agent_keys are the identities the
    agent already holds."""

    def __init__(self, valid_keys=(), agent_keys=(), agent_fails=False):
        self.valid_keys = set(valid_keys)
        self.agent_keys = list(agent_keys)
        self.agent_fails = agent_fails
        self.calls = []

    @property
    def attempted(self):
        """Names of the files passed to ssh-add for registration."""
        return [Path(args[1]).name for args in self.calls
                if args[0] == "ssh-add" and args[1] != "-l"]

    @property
    def queries(self):
        """Number of times the agent was asked for its identities."""
        return sum(1 for args in self.calls if args[:2] == ["ssh-add", "-l"])

    def __call__(self, args, **kwargs):
        args = list(args)
        self.calls.append(args)

        if args[0] == "ssh-agent":
            if self.agent_fails:
                return subprocess.CompletedProcess(args, 1, "", "ssh-agent: could not bind\n")
            return subprocess.CompletedProcess(args, 0, AGENT_OUTPUT, "")

        if args[1] == "-l":
            if self.agent_keys:
                listing = "".join(f"256 SHA256:fake {key} (ED25519)\n" for key in self.agent_keys)
                return subprocess.CompletedProcess(args, 0, listing, "")
            return subprocess.CompletedProcess(args, 1, "The agent has no identities.\n", "")

        if Path(args[1]).name in self.valid_keys:
            self.agent_keys.append(Path(args[1]).name)
            return subprocess.CompletedProcess(args, 0, "", f"Identity added: {args[1]}\n")
        return subprocess.CompletedProcess(args, 1, "", f'Error loading key "{args[1]}": invalid format\n')


@pytest.fixture
def fake_tools(monkeypatch):
    """Install a FakeSSHTools in place of subprocess.run."""
    def install(**kwargs):
        tools = FakeSSHTools(**kwargs)
        monkeypatch.setattr("ssh_agent_setup.agent_utility.subprocess.run", tools)
        return tools
    return install


@pytest.fixture
def ssh_dir(tmp_path, monkeypatch):
    """An empty ~/.ssh under a temporary home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    path = tmp_path / ".ssh"
    path.mkdir(mode=0o700)
    return path


@pytest.fixture
def no_agent(monkeypatch):
    """Make the process environment advertise no agent. Anything the code
    under test exports is undone afterwards."""
    monkeypatch.setenv("SSH_AUTH_SOCK", "")
    monkeypatch.setenv("SSH_AGENT_PID", "")


@pytest.fixture(autouse=True)
def restore_logging():
    """cli.main reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    # pytest's own capture handlers are subclasses and are left alone
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:  # pylint: disable=unidiomatic-typecheck
            root.removeHandler(handler)
    root.setLevel(level)


def _write_files(directory, *names, content="not a key\n"):
    """Create regular files with the given names under directory."""
    for name in names:
        (directory / name).write_text(content, encoding="utf-8")


@pytest.fixture
def make_files():
    """Helper creating regular files by name."""
    return _write_files
