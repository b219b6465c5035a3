"""
repo-bootstrap Test Suite.

- unit/: Naming rules, manifest, settings, retry, runner, CLI wrappers and
  each stage service against mocked collaborators
- unit/services/: One module per stage service
- integration/: A full bootstrap run against in-memory az/gh/git fakes
- fakes.py: The in-memory fakes
- conftest.py: Shared fixtures and test configuration

Run tests with: pytest
Run with coverage: pytest --cov=bootstrapper
"""
