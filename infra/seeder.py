from __future__ import annotations

import os
import sys
import requests


def main() -> int:
    admin_url = os.environ.get("PULSAR_ADMIN_URL", "http://localhost:8080").rstrip("/")
    base = f"{admin_url}/admin/v2"
    cluster = os.environ.get("PULSAR_CLUSTER", "standalone")

    print(f"Seeder connecting to {admin_url} (cluster {cluster})")

    def put(path: str, payload=None, ok=(204, 409)) -> bool:
        try:
            resp = requests.put(f"{base}/{path}", json=payload, timeout=10)
        except requests.RequestException as e:
            print(f"PUT {path} failed: {e}")
            return False
        if resp.status_code in ok:
            state = "exists" if resp.status_code == 409 else "created"
            print(f"{path}: {state}")
            return True
        print(f"PUT {path} failed: {resp.status_code} - {resp.text}")
        return False

    if not put("tenants/analytics", {"adminRoles": [], "allowedClusters": [cluster]}):
        return 1
    for ns in ("events", "sessions"):
        if not put(f"namespaces/analytics/{ns}"):
            return 1

    # Non-partitioned persistent topics with a couple of durable subscriptions each
    topics = {
        "events": ["clicks", "views"],
        "sessions": ["logins"],
    }
    for ns, names in topics.items():
        for topic in names:
            if not put(f"persistent/analytics/{ns}/{topic}"):
                return 1
            for sub in ("audit", "billing"):
                # Creating at the earliest position so skip/seek have something to act on
                if not put(f"persistent/analytics/{ns}/{topic}/subscription/{sub}", {"entryId": -1, "ledgerId": -1}):
                    return 1

    print("Seeder completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
