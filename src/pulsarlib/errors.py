"""Error types and user-facing error formatting for pulsarctl."""

from __future__ import annotations

from typing import Any, Optional


class NetworkError(RuntimeError):
    """An admin API call failed, timed out, or returned a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _status(error: Exception) -> Optional[int]:
    return getattr(error, "status_code", None)


def format_error_message(operation: str, error: Exception, context: dict[str, Any] | None = None) -> str:
    """Format a user-friendly error message based on the exception type and context."""
    error_str = str(error)
    context = context or {}
    status = _status(error)

    # Authentication errors
    if status in (401, 403) or any(
        word in error_str.lower() for word in ["unauthorized", "forbidden", "credentials"]
    ):
        return (
            f"Authentication failed. Please check your token or OAuth2 credentials. "
            f"Original error: {error_str}"
        )

    # Tenant/namespace/topic/subscription not found
    if status == 404 or "not found" in error_str.lower() or "does not exist" in error_str.lower():
        for key in ("subscription", "topic", "namespace", "tenant"):
            if key in context:
                return f"{key.capitalize()} '{context[key]}' not found. Original error: {error_str}"
        return f"Resource not found while trying to {operation}. Original error: {error_str}"

    # Subscription busy or precondition failures
    if status in (409, 412):
        return (
            f"Cannot {operation}: the broker refused the request "
            f"(the subscription may have active consumers). Original error: {error_str}"
        )

    # Connection-related errors
    if "connection" in error_str.lower() or "timed out" in error_str.lower():
        return (
            "Failed to connect to the admin API. "
            "Please check that the cluster is running and the admin_url is reachable. "
            f"Original error: {error_str}"
        )

    # Generic error with helpful context
    return f"Failed to {operation}: {error_str}"


def suggest_troubleshooting_steps(operation: str, error: Exception) -> list[str]:
    """Suggest troubleshooting steps based on the operation and error."""
    error_str = str(error).lower()
    status = _status(error)
    suggestions = []

    if status in (401, 403) or "unauthorized" in error_str or "forbidden" in error_str:
        suggestions.extend([
            "Check the auth section of your cluster configuration",
            "Verify the token has not expired",
            "Ensure the role has admin permissions on the tenant",
        ])

    elif status == 404 or "not found" in error_str:
        suggestions.extend([
            "List available tenants: pulsarctl tenants list",
            "Check the spelling of tenant, namespace and topic names",
        ])
        if "subscription" in operation.lower():
            suggestions.append("List subscriptions: pulsarctl subscriptions list --tenant T --namespace N --topic X")

    elif "connection" in error_str or "timed out" in error_str:
        suggestions.extend([
            "Check that the broker is running: curl <admin_url>/admin/v2/clusters",
            "Verify admin_url in your configuration",
            "Increase the cluster timeout in the config file",
        ])

    if not suggestions:
        suggestions.extend([
            "Check the logs with -v/--verbose flag for more details",
            "Verify your configuration file is correct",
        ])

    return suggestions


def format_config_error(error: Exception) -> str:
    """Format configuration-related error messages."""
    error_str = str(error)

    if "no config file found" in error_str.lower():
        return (
            "No configuration file found. Please either:\n"
            "  • Set PULSARCTL_CONFIG=/path/to/config.yaml, or\n"
            "  • Create ~/.config/pulsarctl/config.yaml\n"
            "\n"
            "See the README for configuration examples."
        )

    if "cluster not found" in error_str.lower():
        return (
            f"Cluster configuration error: {error_str}\n"
            "Check your config file and ensure the cluster is properly defined."
        )

    return f"Configuration error: {error_str}"
