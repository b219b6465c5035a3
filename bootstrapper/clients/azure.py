"""
Azure CLI client.

Wraps the handful of `az` commands the bootstrap needs: session probing,
subscription selection, state storage, service principals and role
assignments. Existence checks return booleans (a non-zero exit is a normal
"absent" answer); create calls raise CommandError on failure.
"""

from typing import Any, Optional

from bootstrapper.core.runner import CommandRunner


class AzureCli:
    """Typed facade over the `az` executable."""

    def __init__(self, runner: CommandRunner, executable: str = "az"):
        self.runner = runner
        self.az = executable

    def _cmd(self, *args: str) -> list[str]:
        return [self.az, *args]

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def account_show(self) -> Optional[dict[str, Any]]:
        """Return the active account, or None when not logged in."""
        result = self.runner.run(self._cmd("account", "show", "--output", "json"), check=False)
        if not result.ok:
            return None
        return result.json()

    def login_device_code(self) -> bool:
        result = self.runner.run(
            self._cmd("login", "--use-device-code", "--output", "none"),
            check=False,
            interactive=True,
        )
        return result.ok

    def list_subscriptions(self) -> list[dict[str, Any]]:
        return self.runner.run_json(self._cmd("account", "list", "--output", "json")) or []

    def set_subscription(self, subscription_id: str) -> None:
        self.runner.run(self._cmd("account", "set", "--subscription", subscription_id))

    # -------------------------------------------------------------------------
    # State storage
    # -------------------------------------------------------------------------

    def group_exists(self, name: str) -> bool:
        return self.runner.run(
            self._cmd("group", "show", "--name", name, "--output", "none"), check=False
        ).ok

    def create_group(self, name: str, location: str) -> None:
        self.runner.run(
            self._cmd("group", "create", "--name", name, "--location", location, "--output", "none")
        )

    def storage_account_exists(self, name: str, resource_group: str) -> bool:
        return self.runner.run(
            self._cmd(
                "storage", "account", "show",
                "--name", name,
                "--resource-group", resource_group,
                "--output", "none",
            ),
            check=False,
        ).ok

    def create_storage_account(self, name: str, resource_group: str, location: str, sku: str) -> None:
        self.runner.run(
            self._cmd(
                "storage", "account", "create",
                "--name", name,
                "--resource-group", resource_group,
                "--location", location,
                "--sku", sku,
                "--output", "none",
            )
        )

    def container_exists(self, name: str, account: str) -> bool:
        return self.runner.run(
            self._cmd(
                "storage", "container", "show",
                "--name", name,
                "--account-name", account,
                "--auth-mode", "login",
                "--output", "none",
            ),
            check=False,
        ).ok

    def create_container(self, name: str, account: str) -> None:
        self.runner.run(
            self._cmd(
                "storage", "container", "create",
                "--name", name,
                "--account-name", account,
                "--auth-mode", "login",
                "--output", "none",
            )
        )

    # -------------------------------------------------------------------------
    # Service principals
    # -------------------------------------------------------------------------

    def find_service_principal_app_ids(self, display_name: str) -> list[str]:
        """App ids of service principals whose display name matches exactly."""
        ids = self.runner.run_json(
            self._cmd(
                "ad", "sp", "list",
                "--display-name", display_name,
                "--query", f"[?displayName=='{display_name}'].appId",
                "--output", "json",
            )
        )
        return list(ids or [])

    def create_service_principal(self, name: str, role: str, scope: str) -> dict[str, Any]:
        """Create an app + service principal; returns appId/password/tenant."""
        return self.runner.run_json(
            self._cmd(
                "ad", "sp", "create-for-rbac",
                "--name", name,
                "--role", role,
                "--scopes", scope,
                "--only-show-errors",
                "--output", "json",
            )
        ) or {}

    def reset_app_credential(self, app_id: str) -> dict[str, Any]:
        """Issue a fresh client secret for an existing app registration."""
        return self.runner.run_json(
            self._cmd(
                "ad", "app", "credential", "reset",
                "--id", app_id,
                "--only-show-errors",
                "--output", "json",
            )
        ) or {}

    # -------------------------------------------------------------------------
    # Role assignments
    # -------------------------------------------------------------------------

    def role_assignment_ids(self, assignee: str, role: str, scope: str) -> list[str]:
        ids = self.runner.run_json(
            self._cmd(
                "role", "assignment", "list",
                "--assignee", assignee,
                "--role", role,
                "--scope", scope,
                "--query", "[].id",
                "--output", "json",
            )
        )
        return list(ids or [])

    def create_role_assignment(self, assignee: str, role: str, scope: str) -> None:
        self.runner.run(
            self._cmd(
                "role", "assignment", "create",
                "--assignee", assignee,
                "--role", role,
                "--scope", scope,
                "--output", "none",
            )
        )
