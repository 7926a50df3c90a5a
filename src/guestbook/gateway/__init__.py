"""
HTTP log gateway: exposes a RemoteLog to HTTPRemoteLog clients.
"""

from .server import create_app, serve

__all__ = ["create_app", "serve"]
