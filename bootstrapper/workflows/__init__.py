"""Staged orchestration of a bootstrap run."""

from bootstrapper.workflows.bootstrap import BootstrapResult, BootstrapStage, BootstrapWorkflow

__all__ = ["BootstrapResult", "BootstrapStage", "BootstrapWorkflow"]
