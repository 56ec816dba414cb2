"""In-Mail client - browse a mail-capture server from Python.

This package provides an async client for the In-Mail SMTP trap server:
session handling, message browsing with on-demand hydration, content
resolution for display, attachment downloads and a small CLI.
"""

__version__ = "0.1.0"
__author__ = "In-Mail"

from inmail_client.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
