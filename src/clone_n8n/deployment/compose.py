"""Compose file generation for a cloned site.

The site's ``docker-compose.yml`` is rendered from a Jinja2 template with the
site names, image references and shared network as context. The template
does nothing beyond interpolation; the rendered text is parsed back with
PyYAML before it is written so a broken render never reaches the runtime.
"""

from pathlib import Path

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from rich.markup import escape

from clone_n8n.errors import CloneError
from clone_n8n.naming import SiteDescriptor
from clone_n8n.utils.config import Settings
from clone_n8n.utils.logger import get_logger

logger = get_logger("compose")

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
TEMPLATE_FILENAME = "docker-compose.yml.j2"
COMPOSE_FILE_NAME = "docker-compose.yml"


def build_context(site: SiteDescriptor, settings: Settings) -> dict:
    return {
        "site": site,
        "images": {"n8n": settings.n8n_image, "nginx": settings.nginx_image},
        "shared_network": settings.shared_network,
    }


def render_compose(site: SiteDescriptor, settings: Settings) -> str:
    """Render the compose definition and check that it parses.

    Raises:
        CloneError: The rendered text is not valid YAML
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    template = env.get_template(TEMPLATE_FILENAME)
    rendered = template.render(build_context(site, settings))

    try:
        parsed = yaml.safe_load(rendered)
    except yaml.YAMLError as e:
        raise CloneError(f"Generated compose file is not valid YAML: {e}") from e
    if not isinstance(parsed, dict) or "services" not in parsed:
        raise CloneError("Generated compose file has no services section")
    return rendered


def write_compose_file(site: SiteDescriptor, settings: Settings, site_dir: Path) -> Path:
    """Render the compose file into ``site_dir`` and return its path."""
    rendered = render_compose(site, settings)
    site_dir.mkdir(parents=True, exist_ok=True)
    output_path = site_dir / COMPOSE_FILE_NAME
    output_path.write_text(rendered, encoding="utf-8")
    logger.info(f"Created {COMPOSE_FILE_NAME}")
    logger.debug(f"Compose file written to {escape(str(output_path))}")
    return output_path
