"""Site naming conventions.

A site is identified by its production domain. Every local name (domain,
directory, container names, network) is derived from the pair
``(infrastructure, domain)`` and nothing else::

    >>> site = derive_site("dev-fi-01", "ai.refine.digital")
    >>> site.local_domain
    'local-ai.refine.digital'
    >>> site.local_directory
    'local-ai-refine-digital'
    >>> site.n8n_container
    'local-ai-refine-digital-n8n-1'
"""

import re
from dataclasses import dataclass

from clone_n8n.errors import UsageError

LOCAL_PREFIX = "local-"

_INFRASTRUCTURE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")


@dataclass(frozen=True)
class SiteDescriptor:
    """Names derived for one cloned site.

    Attributes:
        infrastructure: Infrastructure profile name (e.g. ``dev-fi-01``)
        domain: Production domain, also the remote site directory name
    """

    infrastructure: str
    domain: str

    @property
    def local_domain(self) -> str:
        return LOCAL_PREFIX + self.domain

    @property
    def local_directory(self) -> str:
        return self.local_domain.replace(".", "-")

    @property
    def container_prefix(self) -> str:
        return self.local_directory

    @property
    def n8n_container(self) -> str:
        return f"{self.container_prefix}-n8n-1"

    @property
    def nginx_container(self) -> str:
        return f"{self.container_prefix}-nginx-1"

    @property
    def container_names(self) -> tuple[str, str]:
        return (self.n8n_container, self.nginx_container)

    @property
    def network_name(self) -> str:
        return self.local_domain

    @property
    def remote_directory(self) -> str:
        return self.domain

    @property
    def remote_archive(self) -> str:
        """Absolute path of the transient data archive on the remote host."""
        return f"/tmp/{self.domain.replace('.', '')}-data.tar.gz"

    @property
    def local_archive_name(self) -> str:
        return f"{self.local_directory}-data.tar.gz"


def validate_infrastructure(name: str) -> str:
    """Return the infrastructure name or raise :class:`UsageError`."""
    if not name or not _INFRASTRUCTURE_RE.match(name):
        raise UsageError(
            f"Invalid infrastructure name: '{name}'",
            hint="Use letters, digits, '.', '_' or '-' (e.g. dev-fi-01).",
        )
    return name


def validate_domain(domain: str) -> str:
    """Return the domain lowercased, or raise :class:`UsageError`.

    Only dotted DNS names are accepted so that nothing unexpected reaches a
    remote shell or a container name.
    """
    candidate = (domain or "").strip().lower()
    labels = candidate.split(".")
    if len(candidate) > 253 or len(labels) < 2 or not all(_LABEL_RE.match(lbl) for lbl in labels):
        raise UsageError(
            f"Invalid domain: '{domain}'",
            hint="Pass the production domain in dotted form (e.g. ai.refine.digital).",
        )
    return candidate


def derive_site(infrastructure: str, domain: str) -> SiteDescriptor:
    """Validate both inputs and build the :class:`SiteDescriptor`."""
    return SiteDescriptor(validate_infrastructure(infrastructure), validate_domain(domain))
