"""
Integration tests for user account endpoints.
"""

import pytest

from astro_api.users.passwords import verify_stored_password


def register(client, email="a@x.com", password="secret1", name="A", **extra):
    return client.post(
        "/api/users",
        json={"email": email, "password": password, "name": name, **extra},
    )


@pytest.mark.integration
class TestRegister:
    """Tests for POST /api/users."""

    def test_register_success(self, client):
        response = register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["email"] == "a@x.com"
        assert data["name"] == "A"
        assert data["isSubscribed"] is False
        assert data["questionsAsked"] == 0
        assert data["dailyStreak"] == 0
        assert data["birthDate"] is None
        assert "createdAt" in data
        assert "updatedAt" in data
        assert "password" not in data

    def test_password_stored_as_salted_hash(self, client):
        user_id = register(client).json()["id"]

        stored = client.app.state.user_store._users[user_id].password
        salt, hashed = stored.split(":")
        assert len(salt) == 64
        assert len(hashed) == 128
        assert verify_stored_password("secret1", stored)

    def test_legacy_register_path(self, client):
        response = client.post(
            "/api/users/register",
            json={"email": "b@x.com", "password": "secret1", "name": "B", "username": "bee"},
        )

        assert response.status_code == 201
        assert "password" not in response.json()

    def test_birth_details_accepted(self, client):
        response = register(
            client,
            birthDate="1990-05-17T00:00:00Z",
            birthTime="14:30",
            birthPlace="Lisbon",
            birthLatitude=38.72,
            birthLongitude=-9.14,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["birthPlace"] == "Lisbon"
        assert data["birthTime"] == "14:30"
        assert data["birthLongitude"] == -9.14

    def test_duplicate_email(self, client):
        assert register(client).status_code == 201

        response = register(client, email="A@X.com", name="Other")

        assert response.status_code == 400
        assert response.json()["error"] == "CONFLICT"
        assert response.json()["message"] == "Email already registered"
        assert len(client.app.state.user_store) == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"email": "bad", "password": "secret1", "name": "A"},
            {"email": "a@x.com", "password": "12345", "name": "A"},
            {"email": "a@x.com", "password": "secret1"},
            {},
        ],
    )
    def test_invalid_input(self, client, body):
        response = client.post("/api/users", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["details"]["errors"]
        assert len(client.app.state.user_store) == 0


@pytest.mark.integration
class TestLogin:
    def test_login_success(self, client):
        user_id = register(client).json()["id"]

        response = client.post("/api/users/login", json={"email": "A@x.com", "password": "secret1"})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == user_id
        assert data["lastActiveAt"] is not None
        assert "password" not in data

    @pytest.mark.parametrize(
        "email,password",
        [("a@x.com", "wrong-password"), ("nobody@x.com", "secret1")],
    )
    def test_login_rejected(self, client, email, password):
        register(client)

        response = client.post("/api/users/login", json={"email": email, "password": password})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"


@pytest.mark.integration
class TestGetUser:
    def test_get_user(self, client):
        created = register(client).json()

        response = client.get(f"/api/users/{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    def test_get_missing_user(self, client):
        response = client.get("/api/users/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.integration
class TestUpdateUser:
    def test_update_name_only(self, client):
        created = register(client).json()

        response = client.patch(f"/api/users/{created['id']}", json={"name": "X"})

        assert response.status_code == 200
        updated = response.json()
        assert updated["name"] == "X"
        assert updated["updatedAt"] >= created["updatedAt"]
        for key in created:
            if key not in ("name", "updatedAt"):
                assert updated[key] == created[key]

    def test_update_profile_fields(self, client):
        user_id = register(client).json()["id"]

        response = client.patch(
            f"/api/users/{user_id}",
            json={"isSubscribed": True, "questionsAsked": 3, "dailyStreak": 2, "birthPlace": "Porto"},
        )

        data = response.json()
        assert data["isSubscribed"] is True
        assert data["questionsAsked"] == 3
        assert data["dailyStreak"] == 2
        assert data["birthPlace"] == "Porto"

    def test_password_cannot_be_updated(self, client):
        user_id = register(client).json()["id"]

        response = client.patch(f"/api/users/{user_id}", json={"password": "hacked1"})

        assert response.status_code == 400
        login = client.post("/api/users/login", json={"email": "a@x.com", "password": "secret1"})
        assert login.status_code == 200

    def test_email_taken_by_another_user(self, client):
        register(client, email="a@x.com")
        other_id = register(client, email="b@x.com", name="B").json()["id"]

        response = client.patch(f"/api/users/{other_id}", json={"email": "a@x.com"})

        assert response.status_code == 400
        assert response.json()["error"] == "CONFLICT"

    def test_update_missing_user(self, client):
        response = client.patch("/api/users/does-not-exist", json={"name": "X"})

        assert response.status_code == 404


@pytest.mark.integration
class TestDeleteUser:
    def test_delete_user(self, client):
        user_id = register(client).json()["id"]

        response = client.delete(f"/api/users/{user_id}")

        assert response.status_code == 204
        assert response.content == b""
        assert client.get(f"/api/users/{user_id}").status_code == 404

    def test_delete_frees_email(self, client):
        user_id = register(client).json()["id"]
        client.delete(f"/api/users/{user_id}")

        assert register(client).status_code == 201

    def test_delete_missing_user(self, client):
        response = client.delete("/api/users/does-not-exist")

        assert response.status_code == 404
