"""clone-n8n: copy a production n8n site into a local Docker environment.

The package sequences external tools (rsync, ssh, scp, docker) to mirror a
remote n8n deployment, rewrite its domain-specific configuration and start
it under a local domain behind the infrastructure's nginx-proxy.
"""

# Version information
__version__ = "1.0.0"

__all__ = ["__version__"]
