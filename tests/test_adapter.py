from __future__ import annotations

from typing import Any, Dict, List

from pulsarlib.config import Cluster
from pulsarlib.errors import NetworkError
from pulsartui.adapter import ClusterResourceClient, run_intent
from pulsartui.models.intents import (
    ActionIntent,
    ActionResult,
    DetailIntent,
    DetailResult,
    FetchIntent,
    FetchResult,
)
from pulsartui.models.navigation_state import ResourceLevel
from pulsartui.models.session_mode import ResourceAction

TOPICS = ResourceLevel.root().child("t1").child("ns1")
SUBS = TOPICS.child("orders")


class FakeClient:
    def __init__(self):
        self.calls: List[tuple] = []

    def list_tenants(self):
        return ["public", "t1"]

    def list_namespaces(self, tenant):
        return ["ns1"]

    def list_topics(self, tenant, namespace):
        return [{"name": "orders", "fqn": f"persistent://{tenant}/{namespace}/orders", "persistent": True}]

    def list_subscriptions(self, tenant, namespace, topic):
        return [{"name": "s1", "type": "Shared", "backlog": 12, "consumer_count": 2}]

    def get_subscription_detail(self, tenant, namespace, topic, subscription) -> Dict[str, Any]:
        return {
            "name": subscription,
            "backlog": 12,
            "durable": True,
            "consumers": [{"name": "c1", "unacked_messages": 0}],
        }

    def delete_subscription(self, *args):
        self.calls.append(("delete",) + args)

    def skip_all_messages(self, *args):
        raise NetworkError("busy", status_code=412)

    def reset_subscription(self, *args):
        self.calls.append(("seek",) + args)
        return 0


class BrokenClient(FakeClient):
    def list_tenants(self):
        raise KeyError("admin_url")


def test_fetch_converts_summaries():
    result = run_intent(FakeClient(), FetchIntent(TOPICS, 3))
    assert isinstance(result, FetchResult) and result.ok
    (topic,) = result.items
    assert topic.name == "orders"
    assert topic.summary_value("persistent") == "yes"

    (sub,) = run_intent(FakeClient(), FetchIntent(SUBS, 4)).items
    assert sub.summary_value("backlog") == "12"
    assert sub.summary_value("consumers") == "2"
    assert sub.summary_value("missing") == "—"


def test_detail_flattens_properties_and_consumers():
    result = run_intent(FakeClient(), DetailIntent(SUBS, "s1", 1))
    assert isinstance(result, DetailResult) and result.ok
    assert ("backlog", "12") in result.properties
    assert all(key != "consumers" for key, _ in result.properties)
    assert result.consumers == ((("name", "c1"), ("unacked_messages", "0")),)


def test_actions_pass_path_and_hours():
    client = FakeClient()
    assert run_intent(client, ActionIntent(ResourceAction.DELETE_SUBSCRIPTION, SUBS, "s1")).ok
    assert run_intent(client, ActionIntent(ResourceAction.SEEK_SUBSCRIPTION, SUBS, "s1", hours=3)).ok
    assert client.calls == [
        ("delete", "t1", "ns1", "orders", "s1"),
        ("seek", "t1", "ns1", "orders", "s1", 3),
    ]


def test_failures_are_returned():
    result = run_intent(FakeClient(), ActionIntent(ResourceAction.SKIP_ALL_MESSAGES, SUBS, "s1"))
    assert isinstance(result, ActionResult)
    assert result.error.status_code == 412

    result = run_intent(BrokenClient(), FetchIntent(ResourceLevel.root(), 1))
    assert isinstance(result.error, NetworkError)


def test_cluster_client_delegates(monkeypatch):
    cluster = Cluster(name="local", admin_url="http://localhost:8080")
    seen = {}

    def fake_list_namespaces(c, tenant):
        seen["cluster"] = c
        return [tenant + "-ns"]

    monkeypatch.setattr("pulsarlib.clients.list_namespaces", fake_list_namespaces)
    result = run_intent(ClusterResourceClient(cluster), FetchIntent(ResourceLevel.root().child("t1"), 2))
    assert [i.name for i in result.items] == ["t1-ns"]
    assert seen["cluster"] is cluster
