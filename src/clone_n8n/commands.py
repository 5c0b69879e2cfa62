"""Typed requests for the external tools the pipeline drives.

Each request is a pydantic model validated on construction and rendered to
an argv list by :meth:`CommandRequest.argv`. Nothing is ever passed through
a local shell; the only shell involved is the remote one behind ``ssh``, and
:class:`RemoteShell` quotes every word for it with :func:`shlex.join`.

Examples:
    >>> RsyncMirror(
    ...     remote=RemoteLocation(target="fly@dev-fi-01", path="~/ai.refine.digital/"),
    ...     destination="/home/me/n8n/local-ai-refine-digital/",
    ... ).argv()
    ['rsync', '-avz', '--delete', 'fly@dev-fi-01:~/ai.refine.digital/', '/home/me/n8n/local-ai-refine-digital/']
"""

import re
import shlex
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Docker object names: containers, networks
_OBJECT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
# user@host or bare host alias
_SSH_TARGET_RE = re.compile(r"^(?:[A-Za-z0-9_][A-Za-z0-9_.-]*@)?[A-Za-z0-9_][A-Za-z0-9_.:-]*$")


def _check_text(value: str, what: str) -> str:
    if not value:
        raise ValueError(f"{what} must not be empty")
    if "\x00" in value or "\n" in value:
        raise ValueError(f"{what} must not contain NUL or newline characters")
    if value.startswith("-"):
        raise ValueError(f"{what} must not start with '-': {value!r}")
    return value


def _check_object_name(value: str) -> str:
    if not _OBJECT_NAME_RE.match(value or ""):
        raise ValueError(f"Invalid container or network name: {value!r}")
    return value


class CommandRequest(BaseModel):
    """Base class for a validated external command."""

    model_config = ConfigDict(frozen=True)

    def argv(self) -> list[str]:
        raise NotImplementedError

    def describe(self) -> str:
        return shlex.join(self.argv())


class RemoteLocation(BaseModel):
    """A path on an SSH-reachable host, rendered as ``target:path``."""

    model_config = ConfigDict(frozen=True)

    target: str
    path: str

    @field_validator("target")
    @classmethod
    def _valid_target(cls, value: str) -> str:
        if not _SSH_TARGET_RE.match(value or ""):
            raise ValueError(f"Invalid SSH target: {value!r}")
        return value

    @field_validator("path")
    @classmethod
    def _valid_path(cls, value: str) -> str:
        return _check_text(value, "Remote path")

    def __str__(self) -> str:
        return f"{self.target}:{self.path}"


class RsyncMirror(CommandRequest):
    """One-way mirror of a remote directory into a local one."""

    remote: RemoteLocation
    destination: str
    delete: bool = True
    compress: bool = True

    @field_validator("destination")
    @classmethod
    def _valid_destination(cls, value: str) -> str:
        return _check_text(value, "Destination")

    def argv(self) -> list[str]:
        cmd = ["rsync", "-avz" if self.compress else "-av"]
        if self.delete:
            cmd.append("--delete")
        cmd.extend([str(self.remote), self.destination])
        return cmd


class RemoteShell(CommandRequest):
    """Run a sequence of commands on a remote host through ``ssh``.

    Each inner command is a list of words; they are quoted individually and
    joined with ``&&`` so the remote sequence stops at the first failure.
    """

    target: str
    commands: list[list[str]] = Field(min_length=1)

    @field_validator("target")
    @classmethod
    def _valid_target(cls, value: str) -> str:
        if not _SSH_TARGET_RE.match(value or ""):
            raise ValueError(f"Invalid SSH target: {value!r}")
        return value

    @field_validator("commands")
    @classmethod
    def _valid_commands(cls, value: list[list[str]]) -> list[list[str]]:
        for words in value:
            if not words:
                raise ValueError("Remote commands must not be empty")
            for word in words:
                if "\x00" in word:
                    raise ValueError("Remote command words must not contain NUL characters")
        return value

    def remote_command(self) -> str:
        return " && ".join(_quote_remote(words) for words in self.commands)

    def argv(self) -> list[str]:
        return ["ssh", self.target, self.remote_command()]


def _quote_remote(words: list[str]) -> str:
    # Leading "~/" stays unquoted so the remote shell expands the home directory
    quoted = []
    for word in words:
        if word.startswith("~/"):
            quoted.append("~/" + shlex.quote(word[2:]))
        else:
            quoted.append(shlex.quote(word))
    return " ".join(quoted)


class SecureCopy(CommandRequest):
    """Copy a single remote file to the local machine with ``scp``."""

    source: RemoteLocation
    destination: str

    @field_validator("destination")
    @classmethod
    def _valid_destination(cls, value: str) -> str:
        return _check_text(value, "Destination")

    def argv(self) -> list[str]:
        return ["scp", str(self.source), self.destination]


class ComposeCommand(CommandRequest):
    """``docker compose`` (or legacy ``docker-compose``) against one compose file."""

    compose: list[str] = Field(min_length=1)
    compose_file: str
    action: Literal["up", "down"]
    detached: bool = True

    @field_validator("compose_file")
    @classmethod
    def _valid_file(cls, value: str) -> str:
        return _check_text(value, "Compose file")

    def argv(self) -> list[str]:
        cmd = [*self.compose, "-f", self.compose_file, self.action]
        if self.action == "up" and self.detached:
            cmd.append("-d")
        return cmd


class NetworkCommand(CommandRequest):
    """Create or remove a named network."""

    runtime: str = "docker"
    action: Literal["create", "rm"]
    name: str

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return _check_object_name(value)

    def argv(self) -> list[str]:
        return [self.runtime, "network", self.action, self.name]


class ContainerCommand(CommandRequest):
    """Stop or remove named containers."""

    runtime: str = "docker"
    action: Literal["stop", "rm"]
    names: list[str] = Field(min_length=1)

    @field_validator("names")
    @classmethod
    def _valid_names(cls, value: list[str]) -> list[str]:
        return [_check_object_name(name) for name in value]

    def argv(self) -> list[str]:
        return [self.runtime, self.action, *self.names]


class InspectCommand(CommandRequest):
    """Read a single field of a container's state."""

    runtime: str = "docker"
    name: str
    template: str = "{{.State.Status}}"

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return _check_object_name(value)

    def argv(self) -> list[str]:
        return [self.runtime, "inspect", "--format", self.template, self.name]


class ListCommand(CommandRequest):
    """List running container names or network names, one per line."""

    runtime: str = "docker"
    kind: Literal["containers", "networks"]

    def argv(self) -> list[str]:
        if self.kind == "containers":
            return [self.runtime, "ps", "--format", "{{.Names}}"]
        return [self.runtime, "network", "ls", "--format", "{{.Name}}"]
