"""Bearer token resolution for admin API requests."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

import requests

from .config import Cluster
from .errors import NetworkError

logger = logging.getLogger(__name__)

_TOKENS: Dict[str, str] = {}
_TOKENS_LOCK = threading.Lock()


def fetch_oauth2_token(cluster: Cluster) -> str:
    """Exchange client credentials for an access token."""
    auth = cluster.auth
    data = {
        "grant_type": "client_credentials",
        "client_id": auth.client_id,
        "client_secret": auth.client_secret,
    }
    if auth.audience:
        data["audience"] = auth.audience

    logger.info("Requesting OAuth2 token for cluster '%s' from %s", cluster.name, auth.token_url)
    try:
        resp = requests.post(
            auth.token_url,
            data=data,
            headers={"Accept": "application/json"},
            timeout=cluster.timeout,
        )
    except requests.RequestException as e:
        raise NetworkError(f"Token request to {auth.token_url} failed: {e}") from e

    if not resp.ok:
        raise NetworkError(
            f"Token request to {auth.token_url} returned {resp.status_code}",
            status_code=resp.status_code,
        )
    try:
        return resp.json()["access_token"]
    except (ValueError, KeyError) as e:
        raise NetworkError(f"Token response from {auth.token_url} has no access_token") from e


def resolve_token(cluster: Cluster) -> Optional[str]:
    """Bearer token for ``cluster``; None when the cluster needs no auth."""
    auth = cluster.auth
    if auth.type == "token":
        return auth.token
    if auth.type == "oauth2":
        with _TOKENS_LOCK:
            token = _TOKENS.get(cluster.name)
            if token is None:
                token = fetch_oauth2_token(cluster)
                _TOKENS[cluster.name] = token
        return token
    return None


def forget_token(cluster: Cluster) -> None:
    """Drop a cached token the broker rejected so the next call fetches a new one."""
    with _TOKENS_LOCK:
        _TOKENS.pop(cluster.name, None)


def clear_tokens() -> None:
    with _TOKENS_LOCK:
        _TOKENS.clear()
