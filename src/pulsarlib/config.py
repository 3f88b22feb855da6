from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigError(RuntimeError):
    pass


AUTH_TYPES = ("none", "token", "oauth2")


@dataclass
class AuthConfig:
    type: str = "none"
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    audience: Optional[str] = None
    token_url: Optional[str] = None


@dataclass
class Cluster:
    name: str
    admin_url: str
    default_tenant: Optional[str] = None
    timeout: float = 10.0
    auth: AuthConfig = field(default_factory=AuthConfig)


@dataclass
class Config:
    version: int = 1
    default_cluster: Optional[str] = None
    clusters: Dict[str, Cluster] = field(default_factory=dict)
    source_path: Optional[Path] = None

    def get_cluster(self, name: Optional[str] = None) -> Cluster:
        """Return the named cluster, or the default one when ``name`` is None."""
        name = name or self.default_cluster
        if not name:
            if len(self.clusters) == 1:
                return next(iter(self.clusters.values()))
            raise ConfigError("No cluster specified and no default_cluster set in config")
        cluster = self.clusters.get(name)
        if cluster is None:
            raise ConfigError(f"Cluster not found: {name}")
        return cluster


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        # Expand ${VAR} style
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _as_auth(cluster_name: str, raw: Dict[str, Any]) -> AuthConfig:
    auth = AuthConfig(
        type=str(raw.get("type", "none")).strip().lower(),
        token=raw.get("token"),
        client_id=raw.get("client_id"),
        client_secret=raw.get("client_secret"),
        audience=raw.get("audience"),
        token_url=raw.get("token_url"),
    )
    if auth.type not in AUTH_TYPES:
        raise ConfigError(
            f"Cluster '{cluster_name}': unknown auth type '{auth.type}' "
            f"(expected one of {', '.join(AUTH_TYPES)})"
        )
    if auth.type == "token" and not auth.token:
        raise ConfigError(f"Cluster '{cluster_name}': token auth requires 'token'")
    if auth.type == "oauth2":
        missing = [k for k in ("client_id", "client_secret", "token_url") if not getattr(auth, k)]
        if missing:
            raise ConfigError(
                f"Cluster '{cluster_name}': oauth2 auth requires {', '.join(missing)}"
            )
    return auth


def _as_cluster(name: str, raw: Dict[str, Any]) -> Cluster:
    admin_url = str(raw.get("admin_url") or "").strip()
    if not admin_url:
        raise ConfigError(f"Cluster '{name}': admin_url is required")
    try:
        timeout = float(raw.get("timeout", 10))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Cluster '{name}': invalid timeout {raw.get('timeout')!r}") from e
    return Cluster(
        name=name,
        admin_url=admin_url.rstrip("/"),
        default_tenant=raw.get("default_tenant"),
        timeout=timeout,
        auth=_as_auth(name, raw.get("auth") or {}),
    )


def resolve_config_path() -> Path:
    # Highest priority: explicit override
    override = os.environ.get("PULSARCTL_CONFIG")
    if override:
        p = Path(override).expanduser()
        if p.is_file():
            return p
        raise ConfigError(f"PULSARCTL_CONFIG path not found: {p}")

    # XDG base dirs
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", "~/.config")).expanduser()
    candidates = [xdg_home / "pulsarctl" / "config.yaml"]

    xdg_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
    for d in xdg_dirs.split(":"):
        candidates.append(Path(d) / "pulsarctl" / "config.yaml")

    for c in candidates:
        if c.is_file():
            return c

    raise ConfigError(
        "No config file found. Set PULSARCTL_CONFIG or create ~/.config/pulsarctl/config.yaml"
    )


def load_config(path: Optional[Path] = None) -> Config:
    cfg_path = path or resolve_config_path()
    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {cfg_path}: {e}") from e

    data = _expand_env(data)
    clusters_raw = data.get("clusters") or {}
    clusters: Dict[str, Cluster] = {
        name: _as_cluster(name, raw or {}) for name, raw in clusters_raw.items()
    }

    cfg = Config(
        version=int(data.get("version", 1)),
        default_cluster=data.get("default_cluster"),
        clusters=clusters,
        source_path=cfg_path,
    )
    return cfg
