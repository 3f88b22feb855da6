from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

import click
from tabulate import tabulate

from pulsarlib.config import Cluster, ConfigError, load_config
import pulsarlib.clients as clients
from pulsarlib.errors import NetworkError, format_error_message, format_config_error, suggest_troubleshooting_steps


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--json-output",
    "json_output",
    is_flag=True,
    help="Output JSON instead of tables (pretty-printed)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging to stderr (what the CLI is doing)",
)
@click.option("--cluster", "cluster_name", help="Cluster name; uses default_cluster if omitted")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool, cluster_name: Optional[str]) -> None:
    """Pulsar Navigator CLI.

    Explore a Pulsar cluster's tenants, namespaces, topics and subscriptions
    using configuration loaded via XDG or the PULSARCTL_CONFIG environment
    variable. JSON output is always pretty-printed.
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["verbose"] = verbose
    ctx.obj["cluster"] = cluster_name

    # Configure logging once per process
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_cluster(ctx: click.Context) -> Cluster:
    log = logging.getLogger("pulsarctl.config")
    try:
        log.info("Loading config...")
        cfg = load_config()
        log.info("Loaded config from %s", getattr(cfg, "source_path", "<unknown>"))
        return cfg.get_cluster(ctx.obj.get("cluster"))
    except ConfigError as e:
        click.echo(format_config_error(e), err=True)
        raise SystemExit(2)


def _call(ctx: click.Context, operation: str, context: Dict[str, Any], fn: Callable[[], Any]) -> Any:
    """Run an admin API call, turning failures into a readable error and exit code 2."""
    try:
        return fn()
    except NetworkError as e:  # surface helpful error without stack
        click.echo(format_error_message(operation, e, context), err=True)
        if ctx.obj.get("verbose"):
            suggestions = suggest_troubleshooting_steps(operation, e)
            if suggestions:
                click.echo("\nTroubleshooting suggestions:", err=True)
                for suggestion in suggestions[:3]:  # Show top 3 suggestions
                    click.echo(f"  • {suggestion}", err=True)
        raise SystemExit(2)


def _resolve_tenant(cluster: Cluster, tenant: Optional[str]) -> str:
    tenant = tenant or cluster.default_tenant
    if not tenant:
        click.echo("No tenant specified and no default_tenant set for the cluster", err=True)
        raise SystemExit(2)
    return tenant


def _echo_json(out: Any) -> None:
    click.echo(json.dumps(out, indent=2, sort_keys=True))


# CLUSTERS commands


@cli.group()
@click.pass_context
def clusters(ctx: click.Context) -> None:  # noqa: D401
    """Cluster-related commands."""
    pass


@clusters.command("list")
@click.pass_context
def clusters_list(ctx: click.Context) -> None:
    """List configured clusters."""
    log = logging.getLogger("pulsarctl.clusters")
    try:
        cfg = load_config()
        log.info("Loaded config from %s", getattr(cfg, "source_path", "<unknown>"))
    except ConfigError as e:
        click.echo(format_config_error(e), err=True)
        raise SystemExit(2)

    rows = []
    for name, cluster in sorted(cfg.clusters.items()):
        rows.append(
            [
                name,
                cluster.admin_url,
                cluster.auth.type,
                "yes" if (cfg.default_cluster == name) else "—",
            ]
        )

    if ctx.obj.get("json"):
        _echo_json(
            {
                "clusters": [
                    {"name": r[0], "admin_url": r[1], "auth": r[2], "default": r[3] == "yes"}
                    for r in rows
                ]
            }
        )
    else:
        click.echo(tabulate(rows, headers=["NAME", "ADMIN_URL", "AUTH", "DEFAULT"]))


@clusters.command("show")
@click.pass_context
def clusters_show(ctx: click.Context) -> None:
    """Show details for a cluster."""
    cluster = _load_cluster(ctx)

    if ctx.obj.get("json"):
        _echo_json(
            {
                "name": cluster.name,
                "admin_url": cluster.admin_url,
                "default_tenant": cluster.default_tenant,
                "timeout": cluster.timeout,
                "auth": {"type": cluster.auth.type},
            }
        )
        return

    rows = [
        ["name", cluster.name],
        ["admin_url", cluster.admin_url],
        ["default_tenant", cluster.default_tenant or "—"],
        ["timeout", cluster.timeout],
        ["auth", cluster.auth.type],
    ]
    click.echo(tabulate(rows, headers=["FIELD", "VALUE"]))


# TENANTS / NAMESPACES / TOPICS commands


@cli.group()
@click.pass_context
def tenants(ctx: click.Context) -> None:  # noqa: D401
    """Tenant commands."""
    pass


@tenants.command("list")
@click.pass_context
def tenants_list(ctx: click.Context) -> None:
    """List tenants."""
    cluster = _load_cluster(ctx)
    names = _call(ctx, "list tenants", {}, lambda: clients.list_tenants(cluster))

    if ctx.obj.get("json"):
        _echo_json({"tenants": names})
        return
    if not names:
        click.echo("No tenants found")
        return
    click.echo(tabulate([[n] for n in names], headers=["TENANT"]))


@cli.group()
@click.pass_context
def namespaces(ctx: click.Context) -> None:  # noqa: D401
    """Namespace commands."""
    pass


@namespaces.command("list")
@click.option("--tenant", help="Tenant; uses the cluster's default_tenant if omitted")
@click.pass_context
def namespaces_list(ctx: click.Context, tenant: Optional[str]) -> None:
    """List namespaces of a tenant."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    names = _call(
        ctx, "list namespaces", {"tenant": tenant},
        lambda: clients.list_namespaces(cluster, tenant),
    )
    if ctx.obj.get("json"):
        _echo_json({"tenant": tenant, "namespaces": names})
        return
    if not names:
        click.echo("No namespaces found")
        return
    click.echo(tabulate([[n] for n in names], headers=["NAMESPACE"]))


@cli.group()
@click.pass_context
def topics(ctx: click.Context) -> None:  # noqa: D401
    """Topic commands."""
    pass


@topics.command("list")
@click.option("--tenant", help="Tenant; uses the cluster's default_tenant if omitted")
@click.option("--namespace", required=True, help="Namespace name (without the tenant prefix)")
@click.pass_context
def topics_list(ctx: click.Context, tenant: Optional[str], namespace: str) -> None:
    """List topics in a namespace."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    items = _call(
        ctx, "list topics", {"tenant": tenant, "namespace": namespace},
        lambda: clients.list_topics(cluster, tenant, namespace),
    )
    if ctx.obj.get("json"):
        _echo_json({"tenant": tenant, "namespace": namespace, "topics": items})
        return
    if not items:
        click.echo("No topics found")
        return
    rows = [[t["name"], "yes" if t["persistent"] else "no", t["fqn"]] for t in items]
    click.echo(tabulate(rows, headers=["TOPIC", "PERSISTENT", "FQN"]))


# SUBSCRIPTIONS commands


def _topic_options(fn):
    fn = click.option("--topic", required=True, help="Topic short name, or the full non-persistent:// name")(fn)
    fn = click.option("--namespace", required=True, help="Namespace name")(fn)
    fn = click.option("--tenant", help="Tenant; uses the cluster's default_tenant if omitted")(fn)
    return fn


@cli.group()
@click.pass_context
def subscriptions(ctx: click.Context) -> None:  # noqa: D401
    """Subscription commands."""
    pass


@subscriptions.command("list")
@_topic_options
@click.pass_context
def subscriptions_list(ctx: click.Context, tenant: Optional[str], namespace: str, topic: str) -> None:
    """List subscriptions of a topic with backlog and consumer counts."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    context = {"tenant": tenant, "namespace": namespace, "topic": topic}
    items = _call(
        ctx, "list subscriptions", context,
        lambda: clients.list_subscriptions(cluster, tenant, namespace, topic),
    )

    if ctx.obj.get("json"):
        _echo_json({**context, "subscriptions": items})
        return
    if not items:
        click.echo("No subscriptions found")
        return
    rows = [[s["name"], s["type"], s["backlog"], s["consumer_count"]] for s in items]
    click.echo(tabulate(rows, headers=["SUBSCRIPTION", "TYPE", "BACKLOG", "CONSUMERS"]))


@subscriptions.command("show")
@_topic_options
@click.argument("subscription")
@click.pass_context
def subscriptions_show(
    ctx: click.Context, tenant: Optional[str], namespace: str, topic: str, subscription: str
) -> None:
    """Show subscription stats and connected consumers."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    context = {"tenant": tenant, "namespace": namespace, "topic": topic, "subscription": subscription}
    detail = _call(
        ctx, "get subscription detail", context,
        lambda: clients.get_subscription_detail(cluster, tenant, namespace, topic, subscription),
    )

    if ctx.obj.get("json"):
        _echo_json(detail)
        return

    rows = [[k, v] for k, v in detail.items() if k != "consumers"]
    click.echo(tabulate(rows, headers=["PROPERTY", "VALUE"]))
    consumers = detail.get("consumers") or []
    click.echo("")
    if not consumers:
        click.echo("No consumers connected")
        return
    click.echo(
        tabulate(
            [[c["name"], c["unacked_messages"], c["connected_since"], c["address"]] for c in consumers],
            headers=["CONSUMER", "UNACKED", "CONNECTED_SINCE", "ADDRESS"],
        )
    )


@subscriptions.command("delete")
@_topic_options
@click.argument("subscription")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def subscriptions_delete(
    ctx: click.Context, tenant: Optional[str], namespace: str, topic: str, subscription: str, yes: bool
) -> None:
    """Delete a subscription."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    if not yes:
        click.confirm(f"Delete '{subscription}' subscription?", abort=True)
    context = {"tenant": tenant, "namespace": namespace, "topic": topic, "subscription": subscription}
    _call(
        ctx, "delete subscription", context,
        lambda: clients.delete_subscription(cluster, tenant, namespace, topic, subscription),
    )
    click.echo("Subscription deleted.")


@subscriptions.command("skip")
@_topic_options
@click.argument("subscription")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def subscriptions_skip(
    ctx: click.Context, tenant: Optional[str], namespace: str, topic: str, subscription: str, yes: bool
) -> None:
    """Skip all messages in a subscription's backlog."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    if not yes:
        click.confirm(f"Skip all '{subscription}' messages?", abort=True)
    context = {"tenant": tenant, "namespace": namespace, "topic": topic, "subscription": subscription}
    _call(
        ctx, "skip all messages", context,
        lambda: clients.skip_all_messages(cluster, tenant, namespace, topic, subscription),
    )
    click.echo("All messages skipped.")


@subscriptions.command("seek")
@_topic_options
@click.argument("subscription")
@click.option("--hours", type=click.IntRange(min=1), default=24, show_default=True, help="How far back to move the cursor")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def subscriptions_seek(
    ctx: click.Context,
    tenant: Optional[str],
    namespace: str,
    topic: str,
    subscription: str,
    hours: int,
    yes: bool,
) -> None:
    """Move a subscription's cursor back in time."""
    cluster = _load_cluster(ctx)
    tenant = _resolve_tenant(cluster, tenant)
    if not yes:
        click.confirm(f"Seek '{subscription}' subscription back {hours} hours?", abort=True)
    context = {"tenant": tenant, "namespace": namespace, "topic": topic, "subscription": subscription}
    timestamp = _call(
        ctx, "seek subscription", context,
        lambda: clients.reset_subscription(cluster, tenant, namespace, topic, subscription, hours),
    )
    if ctx.obj.get("json"):
        _echo_json({"subscription": subscription, "hours": hours, "timestamp_ms": timestamp})
        return
    click.echo(f"Seeked {hours} hours.")


@cli.command()
@click.pass_context
def tui(ctx: click.Context) -> None:
    """Launch interactive TUI for cluster exploration."""
    try:
        from pulsartui.app import run_tui
    except ImportError as e:
        click.echo(f"TUI dependencies not available: {e}", err=True)
        raise SystemExit(1)

    try:
        run_tui(ctx.obj.get("cluster"))
    except ConfigError as e:
        click.echo(format_config_error(e), err=True)
        raise SystemExit(2)
    except Exception as e:
        error_msg = format_error_message("launch TUI", e, {})
        click.echo(error_msg, err=True)
        raise SystemExit(1)


def main() -> None:  # entry point
    cli(standalone_mode=True)


if __name__ == "__main__":  # pragma: no cover
    main()
