"""
Clients for the services a pipeline talks to.
"""

from rebuild_ci.clients.github import GitHubClient
from rebuild_ci.clients.storage import ObjectStorage

__all__ = [
    "GitHubClient",
    "ObjectStorage",
]
