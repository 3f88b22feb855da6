"""Bridge between the state engine's intents and the admin API client."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol, Union

import pulsarlib.clients as clients
from pulsarlib.config import Cluster
from pulsarlib.errors import NetworkError

from .models.intents import (
    ActionIntent,
    ActionResult,
    DetailIntent,
    DetailResult,
    FetchIntent,
    FetchResult,
)
from .models.navigation_state import LevelKind, ResourceItem, ResourceLevel
from .models.session_mode import ResourceAction

logger = logging.getLogger(__name__)


class ResourceClient(Protocol):
    """What the state engine needs from the admin API."""

    def list_tenants(self) -> List[str]: ...

    def list_namespaces(self, tenant: str) -> List[str]: ...

    def list_topics(self, tenant: str, namespace: str) -> List[Dict[str, Any]]: ...

    def list_subscriptions(self, tenant: str, namespace: str, topic: str) -> List[Dict[str, Any]]: ...

    def get_subscription_detail(
        self, tenant: str, namespace: str, topic: str, subscription: str
    ) -> Dict[str, Any]: ...

    def delete_subscription(self, tenant: str, namespace: str, topic: str, subscription: str) -> None: ...

    def skip_all_messages(self, tenant: str, namespace: str, topic: str, subscription: str) -> None: ...

    def reset_subscription(
        self, tenant: str, namespace: str, topic: str, subscription: str, hours: int
    ) -> int: ...


class ClusterResourceClient:
    """ResourceClient backed by one configured cluster."""

    def __init__(self, cluster: Cluster):
        self.cluster = cluster

    def list_tenants(self):
        return clients.list_tenants(self.cluster)

    def list_namespaces(self, tenant):
        return clients.list_namespaces(self.cluster, tenant)

    def list_topics(self, tenant, namespace):
        return clients.list_topics(self.cluster, tenant, namespace)

    def list_subscriptions(self, tenant, namespace, topic):
        return clients.list_subscriptions(self.cluster, tenant, namespace, topic)

    def get_subscription_detail(self, tenant, namespace, topic, subscription):
        return clients.get_subscription_detail(self.cluster, tenant, namespace, topic, subscription)

    def delete_subscription(self, tenant, namespace, topic, subscription):
        return clients.delete_subscription(self.cluster, tenant, namespace, topic, subscription)

    def skip_all_messages(self, tenant, namespace, topic, subscription):
        return clients.skip_all_messages(self.cluster, tenant, namespace, topic, subscription)

    def reset_subscription(self, tenant, namespace, topic, subscription, hours):
        return clients.reset_subscription(self.cluster, tenant, namespace, topic, subscription, hours)


def _topic_item(raw: Dict[str, Any]) -> ResourceItem:
    return ResourceItem(
        name=raw["name"],
        summary=(
            ("fqn", raw.get("fqn", "")),
            ("persistent", "yes" if raw.get("persistent", True) else "no"),
        ),
    )


def _subscription_item(raw: Dict[str, Any]) -> ResourceItem:
    return ResourceItem(
        name=raw["name"],
        summary=(
            ("type", str(raw.get("type", "—"))),
            ("backlog", str(raw.get("backlog", "—"))),
            ("consumers", str(raw.get("consumer_count", "—"))),
        ),
    )


def list_items(client: ResourceClient, level: ResourceLevel) -> List[ResourceItem]:
    """Call the list operation addressing ``level`` and convert the result."""
    if level.kind is LevelKind.TENANTS:
        return [ResourceItem(name) for name in client.list_tenants()]
    if level.kind is LevelKind.NAMESPACES:
        return [ResourceItem(name) for name in client.list_namespaces(level.tenant)]
    if level.kind is LevelKind.TOPICS:
        return [_topic_item(t) for t in client.list_topics(level.tenant, level.namespace)]
    return [
        _subscription_item(s)
        for s in client.list_subscriptions(level.tenant, level.namespace, level.topic)
    ]


def _detail_result(raw: Dict[str, Any]) -> DetailResult:
    properties = tuple(
        (key, str(value))
        for key, value in raw.items()
        if key != "consumers" and not isinstance(value, (dict, list))
    )
    consumers = tuple(
        tuple((key, str(value)) for key, value in consumer.items())
        for consumer in raw.get("consumers", [])
    )
    return DetailResult(properties=properties, consumers=consumers)


def _run_action(client: ResourceClient, intent: ActionIntent) -> None:
    level = intent.level
    args = (level.tenant, level.namespace, level.topic, intent.name)
    if intent.action is ResourceAction.DELETE_SUBSCRIPTION:
        client.delete_subscription(*args)
    elif intent.action is ResourceAction.SKIP_ALL_MESSAGES:
        client.skip_all_messages(*args)
    else:
        client.reset_subscription(*args, intent.hours)


def run_intent(
    client: ResourceClient, intent: Union[FetchIntent, DetailIntent, ActionIntent]
) -> Union[FetchResult, DetailResult, ActionResult]:
    """Execute one intent; failures are returned, never raised."""
    try:
        if isinstance(intent, FetchIntent):
            return FetchResult(items=list_items(client, intent.level))
        if isinstance(intent, DetailIntent):
            level = intent.level
            raw = client.get_subscription_detail(
                level.tenant, level.namespace, level.topic, intent.name
            )
            return _detail_result(raw)
        _run_action(client, intent)
        return ActionResult()
    except NetworkError as e:
        error: Exception = e
    except Exception as e:
        logger.exception("Unexpected failure running %s", intent)
        error = NetworkError(str(e))

    if isinstance(intent, FetchIntent):
        return FetchResult.failure(error)
    if isinstance(intent, DetailIntent):
        return DetailResult(error=error)
    return ActionResult(error=error)
