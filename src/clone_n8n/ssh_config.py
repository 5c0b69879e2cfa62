"""SSH client configuration lookup.

The infrastructure tool registers each server in ``~/.ssh/config`` under a
``Host`` alias containing the infrastructure name. This module parses that
file into host blocks and picks the block for an infrastructure, so that all
transfers can connect through the alias and inherit the block's port,
identity file and other options.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape

from clone_n8n.errors import ResolutionError
from clone_n8n.utils.logger import get_logger

logger = get_logger("ssh")

_KEYWORD_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9]*)\s*(?:=\s*|\s+)(.*?)\s*$")


@dataclass
class HostBlock:
    """One ``Host`` section of an SSH client config."""

    patterns: list[str]
    options: dict[str, str] = field(default_factory=dict)

    @property
    def hostname(self) -> str | None:
        return self.options.get("hostname")


@dataclass(frozen=True)
class SSHEndpoint:
    """Where the production site lives.

    Attributes:
        alias: Host alias from the SSH config, used to connect
        hostname: The alias' HostName, for display
        user: Remote user owning the site directories
    """

    alias: str
    hostname: str
    user: str

    @property
    def target(self) -> str:
        return f"{self.user}@{self.alias}"


def parse_ssh_config(text: str) -> list[HostBlock]:
    """Parse SSH client config text into host blocks.

    Keywords are case-insensitive and both ``Key value`` and ``Key=value``
    forms are accepted. Options before the first ``Host`` line and ``Match``
    sections are ignored. The first value of a repeated keyword wins, as in
    ``ssh`` itself.
    """
    blocks: list[HostBlock] = []
    current: HostBlock | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        match = _KEYWORD_RE.match(line)
        if not match:
            continue
        keyword, value = match.group(1).lower(), match.group(2)
        value = value.split(" #", 1)[0].strip()

        if keyword == "host":
            current = HostBlock(patterns=[p.strip('"') for p in value.split()])
            blocks.append(current)
        elif keyword == "match":
            current = None
        elif current is not None:
            current.options.setdefault(keyword, value.strip('"'))

    return blocks


def find_host_block(blocks: list[HostBlock], infrastructure: str) -> tuple[str, HostBlock] | None:
    """Return ``(alias, block)`` for the first alias containing the infrastructure name."""
    for block in blocks:
        for pattern in block.patterns:
            if "*" in pattern or "?" in pattern or pattern.startswith("!"):
                continue
            if infrastructure in pattern:
                return pattern, block
    return None


def resolve_endpoint(infrastructure: str, ssh_config: Path, user: str) -> SSHEndpoint:
    """Find the SSH endpoint registered for an infrastructure.

    Raises:
        ResolutionError: Config missing, no matching alias, or alias without HostName
    """
    logger.key_info("Getting SSH configuration...")
    hint = (
        f"Please check your {ssh_config} file.\n"
        "It should contain an entry created by clone-infrastructure.sh"
    )

    try:
        text = ssh_config.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ResolutionError(f"SSH config file not found: {ssh_config}", hint=hint) from None

    found = find_host_block(parse_ssh_config(text), infrastructure)
    if found is None or not found[1].hostname:
        raise ResolutionError(
            f"Could not find SSH host for infrastructure '{infrastructure}'", hint=hint
        )

    alias, block = found
    endpoint = SSHEndpoint(alias=alias, hostname=block.hostname, user=user)
    logger.info(f"✓ SSH host: {escape(user)}@{escape(endpoint.hostname)}")
    logger.info(f"✓ SSH config: {escape(alias)}")
    return endpoint
