"""Point a copied site ``.env`` at the local domain.

The rewrite is key-based: values are read with python-dotenv and each
changed key is written back with :func:`dotenv.set_key`, which locates the
line by key regardless of spacing, quoting or an ``export`` prefix. Every
other line, comments included, is left untouched.

Rules:
    - ``N8N_HOST`` equal to the production domain becomes the local domain.
    - ``WEBHOOK_URL`` whose host is the production domain becomes
      ``https://<local domain><path>``, whatever its original scheme.

A value already pointing at the local domain no longer matches the
production domain, so rewriting twice changes nothing.
"""

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from dotenv import dotenv_values, set_key
from rich.markup import escape

from clone_n8n.errors import PreconditionError
from clone_n8n.naming import SiteDescriptor
from clone_n8n.utils.logger import get_logger

logger = get_logger("env_file")

HOST_KEY = "N8N_HOST"
WEBHOOK_KEY = "WEBHOOK_URL"


@dataclass
class RewriteReport:
    """What a rewrite pass did.

    Attributes:
        changed: key -> (old value, new value)
        missing: Keys absent from the file
        unmatched: Keys present but not referencing the production domain
    """

    changed: dict[str, tuple[str, str]] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.changed


def localize_host(value: str, site: SiteDescriptor) -> str | None:
    """Return the local host for a production host value, else None."""
    if value.strip().lower() == site.domain:
        return site.local_domain
    return None


def localize_webhook_url(value: str, site: SiteDescriptor) -> str | None:
    """Return the local webhook URL for a production webhook URL, else None."""
    parts = urlsplit(value.strip())
    if not parts.scheme or (parts.hostname or "").lower() != site.domain:
        return None
    netloc = site.local_domain if parts.port is None else f"{site.local_domain}:{parts.port}"
    return urlunsplit(("https", netloc, parts.path or "/", parts.query, parts.fragment))


_REWRITERS = {
    HOST_KEY: localize_host,
    WEBHOOK_KEY: localize_webhook_url,
}


def rewrite_env_file(env_path: Path, site: SiteDescriptor) -> RewriteReport:
    """Rewrite the domain-specific keys of ``env_path`` in place.

    Raises:
        PreconditionError: The file does not exist
    """
    if not env_path.is_file():
        raise PreconditionError(
            f"Site .env file not found: {env_path}",
            hint="The remote site directory should contain the n8n .env file.",
        )

    values = dotenv_values(env_path)
    report = RewriteReport()

    for key, localize in _REWRITERS.items():
        current = values.get(key)
        if current is None:
            report.missing.append(key)
            continue

        updated = localize(current, site)
        if updated is None or updated == current:
            report.unmatched.append(key)
            continue

        set_key(env_path, key, updated, quote_mode="never")
        report.changed[key] = (current, updated)
        logger.info(f"{key}: {escape(current)} → {escape(updated)}")

    for key in report.missing:
        logger.warning(f"{key} not found in {escape(env_path.name)}")
    for key in report.unmatched:
        logger.debug(f"{key} does not reference {site.domain}, left unchanged")

    return report
