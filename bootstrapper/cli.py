"""
Command line entry point.

Usage:
    repo-bootstrap                         # config.json in the current checkout
    repo-bootstrap --manifest other.json --yes
    repo-bootstrap --no-trigger --json-logs
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError

from bootstrapper.config.settings import Settings, get_settings
from bootstrapper.core.exceptions import BootstrapError, RepoCreationDeclined
from bootstrapper.workflows.bootstrap import BootstrapWorkflow

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_DECLINED = 2
EXIT_INTERRUPTED = 130


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog on top of stdlib logging, writing to stderr."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-bootstrap",
        description="Provision Terraform state, a CI identity, repositories, "
        "deploy keys and secrets, then publish and run the docs-builder workflow.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Settings are read from BOOTSTRAP_* environment variables or a .env file;
the flags below override them for one run.

Examples:
  repo-bootstrap
  repo-bootstrap --manifest config.json --template docs-builder.tpl
  repo-bootstrap --yes --skip-dispatch --no-trigger
        """,
    )
    parser.add_argument(
        "--manifest", "-m",
        type=Path,
        help="Manifest file (default: config.json)",
    )
    parser.add_argument(
        "--template", "-t",
        type=Path,
        help="Workflow template containing the %%%%INSERTCLONEREPO%%%% line",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Create missing repositories without asking",
    )
    parser.add_argument(
        "--skip-dispatch",
        action="store_true",
        help="Do not push the dispatch workflow into the content repositories",
    )
    parser.add_argument(
        "--no-trigger",
        action="store_true",
        help="Publish the workflow but do not run it",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of the settings with the CLI flags applied."""
    updates = {}
    if args.manifest is not None:
        updates["manifest_path"] = args.manifest
    if args.template is not None:
        updates["template_path"] = args.template
    if args.yes:
        updates["auto_create_repos"] = True
    if args.skip_dispatch:
        updates["install_dispatch_workflow"] = False
    if args.no_trigger:
        updates["trigger_workflow"] = False
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.json_logs:
        updates["log_json"] = True
    return settings.model_copy(update=updates)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run the bootstrap and map the outcome to an exit code."""
    args = build_parser().parse_args(argv)
    try:
        settings = apply_overrides(get_settings(), args)
    except ValidationError as e:
        configure_logging(args.log_level or "INFO", args.json_logs)
        logger.error(
            "bootstrap_error",
            error="Invalid BOOTSTRAP_* settings",
            fields=[".".join(str(part) for part in err["loc"]) for err in e.errors()],
        )
        return EXIT_FAILED
    configure_logging(settings.log_level, settings.log_json)

    workflow = BootstrapWorkflow.from_settings(settings)
    try:
        result = workflow.run()
    except RepoCreationDeclined as e:
        logger.warning("bootstrap_aborted", reason=e.message)
        return EXIT_DECLINED
    except BootstrapError as e:
        logger.error("bootstrap_error", error=str(e))
        return EXIT_FAILED
    except OSError as e:
        logger.error("bootstrap_os_error", error=str(e), filename=e.filename)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("bootstrap_interrupted", stage=workflow.result.stage.value)
        return EXIT_INTERRUPTED

    logger.info(
        "bootstrap_summary",
        project=result.project_name,
        repos_created=result.repos_created,
        keys_generated=result.keys_generated,
        dispatch_updated=result.dispatch_updated,
        pull_request=result.pull_request.url if result.pull_request else None,
        triggered=result.triggered,
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
