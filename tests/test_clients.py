from __future__ import annotations

import json
import threading
import time

import pytest
import requests

import pulsarlib.auth as auth
import pulsarlib.clients as clients
from pulsarlib.config import AuthConfig, Cluster
from pulsarlib.errors import NetworkError

CLUSTER = Cluster(name="local", admin_url="http://broker:8080", timeout=3.0)

TOPIC_STATS = {
    "subscriptions": {
        "billing": {"type": "Shared", "msgBacklog": 4, "consumers": [], "isDurable": True},
        "audit": {
            "type": "Exclusive",
            "msgBacklog": 0,
            "msgRateOut": 1.5,
            "unackedMessages": 2,
            "consumers": [
                {"consumerName": "c-1", "unackedMessages": 2, "connectedSince": "2024-01-15T10:30:00Z", "address": "/10.0.0.5:51234"}
            ],
        },
    }
}


def response(status: int = 200, body=None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = b"" if body is None else json.dumps(body).encode()
    return resp


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def request(self, method, url, timeout=None):
        self.requests.append((method, url, timeout))
        route = self.routes.get((method, url))
        if isinstance(route, Exception):
            raise route
        return route if route is not None else response(404, {"reason": "Not found"})

    def close(self):
        pass


@pytest.fixture
def session():
    fake = FakeSession({})
    clients._SESSIONS[CLUSTER.name] = fake
    yield fake
    clients._SESSIONS.clear()
    auth.clear_tokens()


def admin(path: str) -> str:
    return f"http://broker:8080/admin/v2/{path}"


def test_list_tenants_sorted(session):
    session.routes[("GET", admin("tenants"))] = response(body=["public", "analytics"])
    assert clients.list_tenants(CLUSTER) == ["analytics", "public"]
    assert session.requests[0][2] == 3.0


def test_list_namespaces_strips_tenant(session):
    session.routes[("GET", admin("namespaces/public"))] = response(
        body=["public/default", "public/functions"]
    )
    assert clients.list_namespaces(CLUSTER, "public") == ["default", "functions"]


def test_list_topics(session):
    session.routes[("GET", admin("namespaces/public/default/topics"))] = response(
        body=["persistent://public/default/orders", "non-persistent://public/default/pings"]
    )
    topics = clients.list_topics(CLUSTER, "public", "default")
    assert [t["name"] for t in topics] == ["orders", "non-persistent://public/default/pings"]
    assert [t["persistent"] for t in topics] == [True, False]


def test_same_topic_name_in_both_domains_stays_unique(session):
    session.routes[("GET", admin("namespaces/t1/ns1/topics"))] = response(
        body=["non-persistent://t1/ns1/orders", "persistent://t1/ns1/orders"]
    )
    names = [t["name"] for t in clients.list_topics(CLUSTER, "t1", "ns1")]
    assert names == ["orders", "non-persistent://t1/ns1/orders"]


def test_non_persistent_topic_uses_its_own_path(session):
    topic = "non-persistent://t1/ns1/orders"
    session.routes[("GET", admin("non-persistent/t1/ns1/orders/stats"))] = response(
        body={"subscriptions": {"live": {"type": "Shared", "consumers": [{}]}}}
    )
    session.routes[("DELETE", admin("non-persistent/t1/ns1/orders/subscription/live"))] = response(204)

    subs = clients.list_subscriptions(CLUSTER, "t1", "ns1", topic)
    assert subs == [{"name": "live", "type": "Shared", "backlog": 0, "consumer_count": 1}]
    clients.delete_subscription(CLUSTER, "t1", "ns1", topic, "live")
    assert [url for _, url, _ in session.requests] == [
        admin("non-persistent/t1/ns1/orders/stats"),
        admin("non-persistent/t1/ns1/orders/subscription/live"),
    ]


def test_unknown_topic_domain(session):
    with pytest.raises(NetworkError, match="Unknown topic domain"):
        clients.list_subscriptions(CLUSTER, "t1", "ns1", "bogus://t1/ns1/orders")
    assert session.requests == []


def test_list_subscriptions(session):
    session.routes[("GET", admin("persistent/public/default/orders/stats"))] = response(body=TOPIC_STATS)
    subs = clients.list_subscriptions(CLUSTER, "public", "default", "orders")
    assert subs == [
        {"name": "audit", "type": "Exclusive", "backlog": 0, "consumer_count": 1},
        {"name": "billing", "type": "Shared", "backlog": 4, "consumer_count": 0},
    ]


def test_subscription_detail(session):
    session.routes[("GET", admin("persistent/public/default/orders/stats"))] = response(body=TOPIC_STATS)
    detail = clients.get_subscription_detail(CLUSTER, "public", "default", "orders", "audit")
    assert detail["msg_rate_out"] == 1.5
    assert detail["unacked_messages"] == 2
    assert detail["consumers"][0]["name"] == "c-1"

    with pytest.raises(NetworkError) as info:
        clients.get_subscription_detail(CLUSTER, "public", "default", "orders", "nope")
    assert info.value.status_code == 404


def test_actions_hit_expected_endpoints(session):
    base = "persistent/public/default/orders/subscription/my%20sub"
    session.routes[("DELETE", admin(base))] = response(204)
    session.routes[("POST", admin(base + "/skip_all"))] = response(204)
    session.routes[("POST", admin(base + "/resetcursor/1699996400000"))] = response(204)

    clients.delete_subscription(CLUSTER, "public", "default", "orders", "my sub")
    clients.skip_all_messages(CLUSTER, "public", "default", "orders", "my sub")
    ts = clients.reset_subscription(
        CLUSTER, "public", "default", "orders", "my sub", 2, now=1_700_003_600.0
    )
    assert ts == 1_699_996_400_000
    assert [m for m, _, _ in session.requests] == ["DELETE", "POST", "POST"]


def test_error_status_carries_reason(session):
    session.routes[("DELETE", admin("persistent/t/n/x/subscription/s"))] = response(
        412, {"reason": "Subscription has active connected consumers"}
    )
    with pytest.raises(NetworkError) as info:
        clients.delete_subscription(CLUSTER, "t", "n", "x", "s")
    assert info.value.status_code == 412
    assert "active connected consumers" in str(info.value)


def test_timeout_and_connection_errors(session):
    session.routes[("GET", admin("tenants"))] = requests.Timeout("slow")
    with pytest.raises(NetworkError, match="timed out after 3.0s"):
        clients.list_tenants(CLUSTER)

    session.routes[("GET", admin("tenants"))] = requests.ConnectionError("refused")
    with pytest.raises(NetworkError, match="connection failed"):
        clients.list_tenants(CLUSTER)


def test_token_auth_header():
    cluster = Cluster(
        name="secure", admin_url="http://broker:8080", auth=AuthConfig(type="token", token="abc")
    )
    try:
        http = clients._session(cluster)
        assert http.headers["Authorization"] == "Bearer abc"
    finally:
        clients.reset_sessions()


def test_oauth2_token_is_cached(monkeypatch):
    cluster = Cluster(
        name="cloud",
        admin_url="https://pulsar.example.com",
        auth=AuthConfig(
            type="oauth2",
            client_id="id",
            client_secret="secret",
            token_url="https://auth.example.com/oauth/token",
            audience="urn:pulsar",
        ),
    )
    posts = []

    def fake_post(url, data=None, headers=None, timeout=None):
        posts.append((url, data))
        return response(body={"access_token": "tok", "token_type": "Bearer"})

    monkeypatch.setattr("pulsarlib.auth.requests.post", fake_post)
    try:
        assert auth.resolve_token(cluster) == "tok"
        assert auth.resolve_token(cluster) == "tok"
    finally:
        auth.clear_tokens()
    assert len(posts) == 1
    assert posts[0][1]["grant_type"] == "client_credentials"
    assert posts[0][1]["audience"] == "urn:pulsar"


def test_oauth2_rejection(monkeypatch):
    cluster = Cluster(
        name="cloud",
        admin_url="https://pulsar.example.com",
        auth=AuthConfig(type="oauth2", client_id="id", client_secret="bad", token_url="https://auth/token"),
    )
    monkeypatch.setattr("pulsarlib.auth.requests.post", lambda *a, **kw: response(401, {}))
    with pytest.raises(NetworkError) as info:
        auth.fetch_oauth2_token(cluster)
    assert info.value.status_code == 401


OAUTH_CLUSTER = Cluster(
    name="cloud",
    admin_url="https://pulsar.example.com",
    auth=AuthConfig(type="oauth2", client_id="id", client_secret="s", token_url="https://auth/token"),
)


class RecordingSession:
    """Stands in for requests.Session; answers from a shared queue of responses."""

    def __init__(self, replies, seen):
        self.headers = {}
        self.replies = replies
        self.seen = seen

    def request(self, method, url, timeout=None):
        self.seen.append((method, url, self.headers.get("Authorization")))
        return self.replies.pop(0)

    def close(self):
        pass


def test_expired_oauth2_token_is_refreshed_once(monkeypatch):
    replies = [response(401, {"reason": "token expired"}), response(body=["public"])]
    seen = []
    tokens = iter(["old", "new"])
    monkeypatch.setattr("pulsarlib.clients.requests.Session", lambda: RecordingSession(replies, seen))
    monkeypatch.setattr("pulsarlib.auth.fetch_oauth2_token", lambda _c: next(tokens))
    try:
        assert clients.list_tenants(OAUTH_CLUSTER) == ["public"]
    finally:
        clients.reset_sessions()
        auth.clear_tokens()
    assert [header for _, _, header in seen] == ["Bearer old", "Bearer new"]


def test_static_token_401_is_not_retried(monkeypatch):
    cluster = Cluster(
        name="static", admin_url="http://broker:8080", auth=AuthConfig(type="token", token="abc")
    )
    replies = [response(401, {"reason": "bad token"})]
    seen = []
    monkeypatch.setattr("pulsarlib.clients.requests.Session", lambda: RecordingSession(replies, seen))
    try:
        with pytest.raises(NetworkError) as info:
            clients.list_tenants(cluster)
    finally:
        clients.reset_sessions()
    assert info.value.status_code == 401
    assert len(seen) == 1


def test_concurrent_first_use_builds_one_session(monkeypatch):
    calls = []

    def slow_token(cluster):
        calls.append(cluster.name)
        time.sleep(0.05)
        return "tok"

    monkeypatch.setattr("pulsarlib.clients.resolve_token", slow_token)
    start = threading.Barrier(4)
    sessions = []

    def worker():
        start.wait()
        sessions.append(clients._session(OAUTH_CLUSTER))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        clients.reset_sessions()
    assert calls == ["cloud"]
    assert len({id(s) for s in sessions}) == 1
