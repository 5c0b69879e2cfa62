"""Command-line interface for clone-n8n.

Provides the single ``clone-n8n`` command (:mod:`clone_n8n.cli.main`), the
Rich console and theme shared by all output, and the mirroring of that
output into the session log file (:mod:`clone_n8n.cli.styles`).

The entry point is ``clone_n8n.cli.main:main``; nothing is imported here so
that pipeline modules can use the console without loading the command.
"""
