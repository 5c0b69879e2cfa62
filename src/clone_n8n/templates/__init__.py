"""Jinja2 templates rendered into cloned site directories.

- docker-compose.yml.j2 : n8n + nginx services joined to the site and shared networks
"""
