"""
Configuration Management.

- settings: Settings class with BOOTSTRAP_* environment variable loading
- manifest: The project manifest (config.json) and its validation

Configuration sources (in order of precedence):
1. Command line flags
2. Environment variables
3. .env file
4. Default values

Example:
    from bootstrapper.config import get_settings, load_manifest

    settings = get_settings()
    manifest = load_manifest(settings.manifest_path)
    manifest.managed_repos
"""

from bootstrapper.config.settings import Settings, get_settings
from bootstrapper.config.manifest import Manifest, load_manifest

__all__ = [
    "Settings",
    "get_settings",
    "Manifest",
    "load_manifest",
]
