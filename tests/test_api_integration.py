"""
Integration tests for the Eagle Bank API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from eagle_bank.api import app
from eagle_bank.api.deps import get_banking_system
from eagle_bank.api.tokens import create_access_token
from eagle_bank.errors import UnexpectedError
from eagle_bank.storage import InMemoryStorage
from eagle_bank.system import BankingSystem


ADDRESS = {"line1": "1 High Street", "town": "London", "postcode": "E1 6AN"}


@pytest.fixture
def client():
    """Create a test client backed by a fresh in-memory banking system"""
    test_banking_system = BankingSystem(InMemoryStorage())
    app.dependency_overrides[get_banking_system] = lambda: test_banking_system

    yield TestClient(app)

    app.dependency_overrides.clear()


def register(client, name, email, password="secret-pw"):
    r = client.post("/v1/users", json={
        "name": name,
        "email": email,
        "phone_number": "+447700900123",
        "address": ADDRESS,
        "password": password
    })
    assert r.status_code == 201
    return r.json()


def login(client, email, password="secret-pw"):
    r = client.post("/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


def open_account(client, headers, balance="0.00", number="00000001"):
    r = client.post("/v1/accounts", headers=headers, json={
        "account_type": "personal",
        "bank_name": "Eagle Bank",
        "sort_code": "10-10-10",
        "account_number": number,
        "balance": balance
    })
    assert r.status_code == 201
    return r.json()


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestAuthentication:
    """Test login and bearer token handling"""

    def test_login_and_read_own_user(self, client):
        user = register(client, "Alice", "alice@example.com")
        headers = login(client, "alice@example.com")

        r = client.get(f"/v1/users/{user['id']}", headers=headers)
        assert r.status_code == 200
        data = r.json()
        assert data["email"] == "alice@example.com"
        assert data["address"]["line1"] == "1 High Street"
        assert "password" not in data
        assert "password_hash" not in data

    def test_wrong_password(self, client):
        register(client, "Alice", "alice@example.com")
        r = client.post("/v1/auth/login", json={"email": "alice@example.com", "password": "nope"})
        assert r.status_code == 401

    def test_missing_token(self, client):
        r = client.get("/v1/accounts")
        assert r.status_code == 401

    def test_invalid_token(self, client):
        r = client.get("/v1/accounts", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401

    def test_token_for_unknown_user(self, client):
        headers = {"Authorization": f"Bearer {create_access_token('ghost@example.com')}"}
        r = client.get("/v1/accounts", headers=headers)
        assert r.status_code == 404


class TestUserEndpoints:
    """Test user management over HTTP"""

    def test_duplicate_email_is_conflict(self, client):
        register(client, "Alice", "alice@example.com")
        r = client.post("/v1/users", json={
            "name": "Alice Again",
            "email": "alice@example.com",
            "phone_number": "+447700900123",
            "address": ADDRESS,
            "password": "secret-pw"
        })
        assert r.status_code == 409
        assert r.json()["message"] == "Email already exists"

    def test_validation_error_format(self, client):
        r = client.post("/v1/users", json={
            "name": "Bad Phone",
            "email": "bad@example.com",
            "phone_number": "07700900123",
            "address": ADDRESS,
            "password": "secret-pw"
        })
        assert r.status_code == 400
        data = r.json()
        assert data["message"] == "Validation failed"
        assert any(error["field"] == "phone_number" for error in data["errors"])

    def test_read_other_user_forbidden(self, client):
        alice = register(client, "Alice", "alice@example.com")
        register(client, "Bob", "bob@example.com")
        headers = login(client, "bob@example.com")

        r = client.get(f"/v1/users/{alice['id']}", headers=headers)
        assert r.status_code == 403

    def test_update_and_delete_user(self, client):
        user = register(client, "Alice", "alice@example.com")
        headers = login(client, "alice@example.com")

        r = client.patch(f"/v1/users/{user['id']}", headers=headers, json={
            "name": "Alice Brown",
            "email": "alice@example.com",
            "phone_number": "+447700900999",
            "address": ADDRESS
        })
        assert r.status_code == 200
        assert r.json()["name"] == "Alice Brown"

        r = client.delete(f"/v1/users/{user['id']}", headers=headers)
        assert r.status_code == 204

    def test_delete_user_with_account_conflict(self, client):
        user = register(client, "Alice", "alice@example.com")
        headers = login(client, "alice@example.com")
        open_account(client, headers)

        r = client.delete(f"/v1/users/{user['id']}", headers=headers)
        assert r.status_code == 409


class TestAccountEndpoints:
    """Test bank accounts and balance changes over HTTP"""

    def setup_users(self, client):
        register(client, "Alice", "alice@example.com")
        register(client, "Bob", "bob@example.com")
        return login(client, "alice@example.com"), login(client, "bob@example.com")

    def test_open_and_list_accounts(self, client):
        alice, bob = self.setup_users(client)
        account = open_account(client, alice, balance="100.00")

        assert account["balance"] == "100.00"

        r = client.get("/v1/accounts", headers=alice)
        assert [a["id"] for a in r.json()] == [account["id"]]
        assert client.get("/v1/accounts", headers=bob).json() == []

    def test_other_users_account_is_not_found(self, client):
        alice, bob = self.setup_users(client)
        account = open_account(client, alice)

        r = client.get(f"/v1/accounts/{account['id']}", headers=bob)
        assert r.status_code == 404
        assert r.json()["message"] == "Account not found"

    def test_update_other_users_account_forbidden(self, client):
        alice, bob = self.setup_users(client)
        account = open_account(client, alice)

        r = client.patch(f"/v1/accounts/{account['id']}", headers=bob, json={
            "account_type": "joint",
            "bank_name": "Other Bank",
            "sort_code": "99-99-99",
            "account_number": "99999999"
        })
        assert r.status_code == 403

    def test_deposit_and_withdraw(self, client):
        alice, _ = self.setup_users(client)
        account = open_account(client, alice, balance="100.00")

        r = client.post(f"/v1/accounts/{account['id']}/deposit", headers=alice, params={"amount": "10.50"})
        assert r.status_code == 200
        assert r.json()["balance"] == "110.50"

        r = client.post(f"/v1/accounts/{account['id']}/withdraw", headers=alice, params={"amount": "110.50"})
        assert r.status_code == 200
        assert r.json()["balance"] == "0.00"

    def test_insufficient_funds_is_bad_request(self, client):
        alice, _ = self.setup_users(client)
        account = open_account(client, alice, balance="5.00")

        r = client.post(f"/v1/accounts/{account['id']}/withdraw", headers=alice, params={"amount": "5.01"})
        assert r.status_code == 400
        assert r.json()["message"] == "Insufficient funds"

    def test_sub_cent_amount_rejected(self, client):
        alice, _ = self.setup_users(client)
        account = open_account(client, alice)

        r = client.post(f"/v1/accounts/{account['id']}/deposit", headers=alice, params={"amount": "1.005"})
        assert r.status_code == 400

    def test_delete_account(self, client):
        alice, _ = self.setup_users(client)
        account = open_account(client, alice)

        r = client.delete(f"/v1/accounts/{account['id']}", headers=alice)
        assert r.status_code == 204
        assert client.get(f"/v1/accounts/{account['id']}", headers=alice).status_code == 404


class TestTransferFlow:
    """End-to-end transfer and history tests"""

    def test_transfer_and_history(self, client):
        register(client, "Alice", "alice@example.com")
        register(client, "Bob", "bob@example.com")
        register(client, "Carol", "carol@example.com")
        alice = login(client, "alice@example.com")
        bob = login(client, "bob@example.com")
        carol = login(client, "carol@example.com")

        source = open_account(client, alice, balance="100.00", number="00000001")
        target = open_account(client, bob, number="00000002")

        r = client.post("/v1/transactions", headers=alice, json={
            "from_account_id": source["id"],
            "to_account_id": target["id"],
            "amount": "40.00"
        })
        assert r.status_code == 201
        transaction = r.json()
        assert transaction["amount"] == "40.00"
        assert transaction["to_account"]["deleted"] is False

        assert client.get(f"/v1/accounts/{source['id']}", headers=alice).json()["balance"] == "60.00"
        assert client.get(f"/v1/accounts/{target['id']}", headers=bob).json()["balance"] == "40.00"

        # Both parties can read it, a third party cannot
        assert client.get(f"/v1/transactions/{transaction['id']}", headers=bob).status_code == 200
        assert client.get(f"/v1/transactions/{transaction['id']}", headers=carol).status_code == 403

        r = client.get(f"/v1/accounts/{target['id']}/transactions", headers=bob)
        assert [t["id"] for t in r.json()] == [transaction["id"]]
        assert client.get(f"/v1/accounts/{target['id']}/transactions", headers=alice).status_code == 403

        # History outlives the recipient account
        assert client.delete(f"/v1/accounts/{target['id']}", headers=bob).status_code == 204
        r = client.get("/v1/transactions", headers=alice)
        assert r.status_code == 200
        assert r.json()[0]["to_account"] == {
            "id": target["id"],
            "deleted": True,
            "bank_name": None,
            "sort_code": None,
            "account_number": None
        }

    def test_transfer_from_someone_elses_account_forbidden(self, client):
        register(client, "Alice", "alice@example.com")
        register(client, "Bob", "bob@example.com")
        alice = login(client, "alice@example.com")
        bob = login(client, "bob@example.com")

        source = open_account(client, alice, balance="100.00", number="00000001")
        target = open_account(client, bob, number="00000002")

        r = client.post("/v1/transactions", headers=bob, json={
            "from_account_id": source["id"],
            "to_account_id": target["id"],
            "amount": "1.00"
        })
        assert r.status_code == 403

    def test_transfer_to_missing_account(self, client):
        register(client, "Alice", "alice@example.com")
        alice = login(client, "alice@example.com")
        source = open_account(client, alice, balance="10.00")

        r = client.post("/v1/transactions", headers=alice, json={
            "from_account_id": source["id"],
            "to_account_id": "acc-missing",
            "amount": "1.00"
        })
        assert r.status_code == 404
        assert r.json()["message"] == "Recipient account not found"

    def test_unknown_transaction(self, client):
        register(client, "Alice", "alice@example.com")
        alice = login(client, "alice@example.com")

        r = client.get("/v1/transactions/tan-missing", headers=alice)
        assert r.status_code == 404


class TestErrorMapping:
    """Test that internal failures are reported without detail"""

    def test_unexpected_error_hides_detail(self, monkeypatch):
        system = BankingSystem(InMemoryStorage())
        app.dependency_overrides[get_banking_system] = lambda: system
        try:
            client = TestClient(app)
            register(client, "Alice", "alice@example.com")
            headers = login(client, "alice@example.com")

            def broken(principal_email):
                raise UnexpectedError("storage exploded")

            monkeypatch.setattr(system, "list_accounts", broken)

            r = client.get("/v1/accounts", headers=headers)
            assert r.status_code == 500
            assert r.json() == {"message": "An unexpected error occurred"}
        finally:
            app.dependency_overrides.clear()
