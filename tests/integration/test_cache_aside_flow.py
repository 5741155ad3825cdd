"""
Integration tests for the cache-aside flow through the HTTP surface.

The service runs with its in-process cache backend and a dict-backed user
store, so every request goes through authentication, the authorization gate,
the coordinator and a real cache store.
"""

import pytest
from fastapi.testclient import TestClient

from service_users.app.main import create_app
from service_users.app.models import User
from service_users.tests.helpers import TEST_JWT_SECRET, RecordingUserStore, auth_headers


USERS = [
    User("alice", "Alice", "Liddell", "admin"),
    User("bob", "Bob", "Builder"),
    User("carol", "Carol", "Danvers"),
]


class TestCacheAsideFlow:
    """Scenario tests for the cache-aside user directory."""

    @pytest.fixture
    def store(self):
        return RecordingUserStore(USERS)

    @pytest.fixture
    def client(self, store):
        app = create_app(
            user_store=store,
            cache={"backend": "memory"},
            auth={"jwt_secret": TEST_JWT_SECRET},
        )
        with TestClient(app) as client:
            yield client

    def test_read_through_then_serve_from_cache(self, client, store):
        """Test the first read loads from the store and later reads do not."""
        for _ in range(3):
            response = client.get("/users/carol", headers=auth_headers("carol"))
            assert response.status_code == 200
            assert response.json()["lastname"] == "Danvers"

        assert store.calls["find"] == 1

    def test_store_changes_hidden_until_evicted(self, client, store):
        """Test cached entries win over the store until explicitly evicted."""
        client.get("/users/bob", headers=auth_headers("bob"))
        store.users["bob"] = User("bob", "Robert", "Builder")

        cached = client.get("/users/bob", headers=auth_headers("bob")).json()
        assert cached["firstname"] == "Bob"

        client.post("/users/cache/evict/bob", headers=auth_headers("bob"))
        fresh = client.get("/users/bob", headers=auth_headers("bob")).json()
        assert fresh["firstname"] == "Robert"

    def test_delete_propagates_to_entity_and_list(self, client, store):
        """Test a delete is visible on the next read of both namespaces."""
        assert len(client.get("/users/", headers=auth_headers("alice")).json()) == 3
        client.get("/users/carol", headers=auth_headers("carol"))

        assert client.delete("/users/carol", headers=auth_headers("carol")).status_code == 200

        assert client.get("/users/carol", headers=auth_headers("carol")).status_code == 404
        remaining = client.get("/users/", headers=auth_headers("alice")).json()
        assert [user["username"] for user in remaining] == ["alice", "bob"]

    def test_evict_all_then_everything_reloads(self, client, store):
        client.get("/users/", headers=auth_headers("alice"))
        client.get("/users/alice", headers=auth_headers("alice"))
        client.get("/users/bob", headers=auth_headers("bob"))

        response = client.post("/users/cache/evict-all", headers=auth_headers("alice"))
        assert response.json()["status"] == "ok"

        client.get("/users/", headers=auth_headers("alice"))
        client.get("/users/alice", headers=auth_headers("alice"))
        assert store.calls["find_all"] == 2
        assert store.calls["find"] == 3

    def test_authorization_checked_on_warm_cache(self, client):
        """Test a warm cache never bypasses the access check."""
        assert client.get("/users/alice", headers=auth_headers("alice")).status_code == 200

        response = client.get("/users/alice", headers=auth_headers("mallory"))

        assert response.status_code == 403

    def test_store_outage_then_recovery(self, client, store):
        """Test store outages surface as 503 and reads resume afterwards."""
        store.available = False
        assert client.get("/users/alice", headers=auth_headers("alice")).status_code == 503
        assert client.get("/health").json()["status"] == "degraded"

        store.available = True
        assert client.get("/users/alice", headers=auth_headers("alice")).status_code == 200

    def test_repeated_eviction_is_idempotent(self, client):
        client.get("/users/alice", headers=auth_headers("alice"))

        for _ in range(2):
            response = client.post("/users/cache/evict/alice", headers=auth_headers("alice"))
            assert response.status_code == 200

        assert client.get("/users/alice", headers=auth_headers("alice")).status_code == 200
