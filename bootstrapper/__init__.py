"""
repo-bootstrap - idempotent provisioning for a multi-repository docs project.

This package contains the modules for the bootstrap run:
- config: Pydantic settings and the project manifest
- core: Exceptions, retry policy, command runner, prompts and naming rules
- clients: Thin wrappers around the az, gh and git CLIs
- models: Session, identity, storage, key and secret models
- services: One service per stage (identity, provisioning, repos, secrets, workflow)
- workflows: The staged orchestration of a full run
- cli: argparse entry point
"""

__version__ = "0.1.0"
