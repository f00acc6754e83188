# termbridge/__init__.py
"""Sandboxed workspace terminal bridge: pty shells and file access over HTTP/WebSocket."""

__version__ = "0.1.0"
