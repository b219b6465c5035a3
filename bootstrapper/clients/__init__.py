"""Wrappers around the external CLIs, all driven through one CommandRunner."""

from bootstrapper.clients.azure import AzureCli
from bootstrapper.clients.github import GitHubCli
from bootstrapper.clients.git import GitRepository, parse_remote_url

__all__ = ["AzureCli", "GitHubCli", "GitRepository", "parse_remote_url"]
