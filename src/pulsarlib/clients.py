from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .auth import forget_token, resolve_token
from .config import Cluster
from .errors import NetworkError

logger = logging.getLogger(__name__)

_SESSIONS: Dict[str, requests.Session] = {}
_SESSIONS_LOCK = threading.Lock()

TOPIC_DOMAINS = ("persistent", "non-persistent")


def _session(cluster: Cluster) -> requests.Session:
    """Return the shared HTTP session for a cluster, authenticating on first use."""
    with _SESSIONS_LOCK:
        session = _SESSIONS.get(cluster.name)
        if session is None:
            session = requests.Session()
            session.headers["Accept"] = "application/json"
            token = resolve_token(cluster)
            if token:
                session.headers["Authorization"] = f"Bearer {token}"
            _SESSIONS[cluster.name] = session
        return session


def _drop_session(cluster: Cluster) -> None:
    with _SESSIONS_LOCK:
        session = _SESSIONS.pop(cluster.name, None)
    if session is not None:
        session.close()


def reset_sessions() -> None:
    with _SESSIONS_LOCK:
        sessions = list(_SESSIONS.values())
        _SESSIONS.clear()
    for session in sessions:
        session.close()


def _path(*segments: str) -> str:
    return "/".join(quote(s, safe="") for s in segments)


def topic_name(fqn: str) -> str:
    """Name a topic is listed and addressed by within its namespace.

    Persistent topics use their short name; non-persistent ones keep the full
    ``non-persistent://tenant/ns/topic`` name so the two domains never collide.
    """
    if fqn.startswith("non-persistent://"):
        return fqn
    return fqn.rsplit("/", 1)[-1]


def _topic_path(tenant: str, namespace: str, topic: str, *rest: str) -> str:
    domain = "persistent"
    if "://" in topic:
        domain, _, remainder = topic.partition("://")
        if domain not in TOPIC_DOMAINS:
            raise NetworkError(f"Unknown topic domain '{domain}' in {topic}", status_code=404)
        topic = remainder.rsplit("/", 1)[-1]
    return _path(domain, tenant, namespace, topic, *rest)


def _reason(resp: requests.Response) -> str:
    # The admin API reports failures as {"reason": "..."}
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason or ""
    if isinstance(body, dict) and body.get("reason"):
        return str(body["reason"])
    return str(body)[:200]


def _send(cluster: Cluster, method: str, url: str) -> requests.Response:
    try:
        return _session(cluster).request(method, url, timeout=cluster.timeout)
    except requests.Timeout as e:
        raise NetworkError(f"{method} {url} timed out after {cluster.timeout}s") from e
    except requests.RequestException as e:
        raise NetworkError(f"{method} {url} connection failed: {e}") from e


def _request(cluster: Cluster, method: str, path: str) -> Any:
    url = f"{cluster.admin_url}/admin/v2/{path}"
    logger.debug("%s %s", method, url)
    resp = _send(cluster, method, url)

    if resp.status_code == 401 and cluster.auth.type == "oauth2":
        # Access tokens expire; fetch a fresh one and retry once
        logger.info("Token for cluster '%s' rejected, requesting a new one", cluster.name)
        forget_token(cluster)
        _drop_session(cluster)
        resp = _send(cluster, method, url)

    if not resp.ok:
        raise NetworkError(
            f"{method} {url} returned {resp.status_code}: {_reason(resp)}",
            status_code=resp.status_code,
        )
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        raise NetworkError(f"{method} {url} returned invalid JSON") from e


def list_tenants(cluster: Cluster) -> List[str]:
    """Return tenant names, sorted."""
    return sorted(_request(cluster, "GET", "tenants") or [])


def list_namespaces(cluster: Cluster, tenant: str) -> List[str]:
    """Return namespace names for a tenant without the ``tenant/`` prefix."""
    prefix = f"{tenant}/"
    names = _request(cluster, "GET", _path("namespaces", tenant)) or []
    return sorted(n[len(prefix):] if n.startswith(prefix) else n for n in names)


def list_topics(cluster: Cluster, tenant: str, namespace: str) -> List[Dict[str, Any]]:
    """List topics in a namespace.

    Returns a list of dicts with keys: name (see ``topic_name``, unique within
    the namespace), fqn (``persistent://tenant/ns/topic``) and persistent (bool).
    """
    fqns = _request(cluster, "GET", _path("namespaces", tenant, namespace, "topics")) or []
    results = []
    for fqn in fqns:
        results.append(
            {
                "name": topic_name(fqn),
                "fqn": fqn,
                "persistent": not fqn.startswith("non-persistent://"),
            }
        )
    return sorted(results, key=lambda t: (not t["persistent"], t["name"]))


def _topic_stats(cluster: Cluster, tenant: str, namespace: str, topic: str) -> Dict[str, Any]:
    return _request(cluster, "GET", _topic_path(tenant, namespace, topic, "stats")) or {}


def list_subscriptions(
    cluster: Cluster, tenant: str, namespace: str, topic: str
) -> List[Dict[str, Any]]:
    """List subscriptions of a topic with lightweight stats.

    ``topic`` is a name as returned by ``list_topics``. Returns a list of dicts
    with keys: name, type, backlog (int) and consumer_count (int).
    """
    stats = _topic_stats(cluster, tenant, namespace, topic)
    results = []
    for name, sub in (stats.get("subscriptions") or {}).items():
        results.append(
            {
                "name": name,
                "type": sub.get("type") or "—",
                "backlog": int(sub.get("msgBacklog") or 0),
                "consumer_count": len(sub.get("consumers") or []),
            }
        )
    return sorted(results, key=lambda s: s["name"])


def get_subscription_detail(
    cluster: Cluster, tenant: str, namespace: str, topic: str, subscription: str
) -> Dict[str, Any]:
    """Stats for one subscription, including its connected consumers."""
    stats = _topic_stats(cluster, tenant, namespace, topic)
    sub = (stats.get("subscriptions") or {}).get(subscription)
    if sub is None:
        raise NetworkError(
            f"Subscription {subscription} not found on {tenant}/{namespace}/{topic}",
            status_code=404,
        )

    consumers = []
    for consumer in sub.get("consumers") or []:
        consumers.append(
            {
                "name": consumer.get("consumerName") or "—",
                "unacked_messages": int(consumer.get("unackedMessages") or 0),
                "connected_since": consumer.get("connectedSince") or "—",
                "address": consumer.get("address") or "—",
            }
        )

    return {
        "name": subscription,
        "type": sub.get("type") or "—",
        "backlog": int(sub.get("msgBacklog") or 0),
        "msg_rate_out": float(sub.get("msgRateOut") or 0.0),
        "unacked_messages": int(sub.get("unackedMessages") or 0),
        "durable": bool(sub.get("isDurable", True)),
        "consumers": consumers,
    }


def delete_subscription(
    cluster: Cluster, tenant: str, namespace: str, topic: str, subscription: str
) -> None:
    logger.info("Deleting subscription %s on %s/%s/%s", subscription, tenant, namespace, topic)
    _request(
        cluster,
        "DELETE",
        _topic_path(tenant, namespace, topic, "subscription", subscription),
    )


def skip_all_messages(
    cluster: Cluster, tenant: str, namespace: str, topic: str, subscription: str
) -> None:
    logger.info("Skipping all messages of %s on %s/%s/%s", subscription, tenant, namespace, topic)
    _request(
        cluster,
        "POST",
        _topic_path(tenant, namespace, topic, "subscription", subscription, "skip_all"),
    )


def reset_subscription(
    cluster: Cluster,
    tenant: str,
    namespace: str,
    topic: str,
    subscription: str,
    hours: int,
    now: Optional[float] = None,
) -> int:
    """Move a subscription's cursor back ``hours`` hours; returns the target epoch millis."""
    now = time.time() if now is None else now
    timestamp = int((now - hours * 3600) * 1000)
    logger.info(
        "Resetting %s on %s/%s/%s to %d (%d hours back)",
        subscription, tenant, namespace, topic, timestamp, hours,
    )
    _request(
        cluster,
        "POST",
        _topic_path(
            tenant, namespace, topic,
            "subscription", subscription, "resetcursor", str(timestamp),
        ),
    )
    return timestamp
