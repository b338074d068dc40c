"""
Tests for profile self-service and admin user management.
"""

from unittest.mock import MagicMock

from conftest import auth_headers, make_user

from ouest_services.models import Invoice, User


class TestProfile:
    """Test the authenticated user's own profile"""

    def test_get_profile(self, client, client_user, client_headers):
        response = client.get("/users/profile", headers=client_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == client_user.id
        assert data["emailVerified"] is True

    def test_profile_requires_token(self, client):
        response = client.get("/users/profile")

        assert response.status_code == 401
        assert response.json()["status"] == "error"

    def test_profile_rejects_bad_token(self, client):
        response = client.get("/users/profile", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_update_profile(self, client, client_headers):
        response = client.put(
            "/users/profile",
            json={"name": "Jean Martin", "address": {"city": "Nantes", "postalCode": "44000"}},
            headers=client_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Jean Martin"
        assert data["address"]["city"] == "Nantes"
        assert data["phone"] == "+33612345678"

    def test_update_profile_cannot_change_email(self, client, client_headers):
        response = client.put("/users/profile", json={"email": "autre@example.com"}, headers=client_headers)

        assert response.status_code == 400

    def test_update_preferences(self, client, client_headers):
        token = "t" * 150
        response = client.patch(
            "/users/preferences", json={"notifications": False, "fcmToken": token}, headers=client_headers
        )

        assert response.status_code == 200
        preferences = response.json()["preferences"]
        assert preferences == {"notifications": False, "language": "fr", "fcmToken": token}

    def test_update_preferences_rejects_short_fcm_token(self, client, client_headers):
        response = client.patch("/users/preferences", json={"fcmToken": "short"}, headers=client_headers)

        assert response.status_code == 400


class TestEmailAvailability:
    """Test the public email check"""

    def test_taken_email(self, client, client_user):
        response = client.get(f"/users/check-email/{client_user.email.upper()}")

        assert response.status_code == 200
        assert response.json()["available"] is False

    def test_free_email(self, client):
        response = client.get("/users/check-email/libre@example.com")

        assert response.json()["available"] is True


class TestInvoiceRecords:
    """Test manual invoice references on the profile"""

    def test_add_list_and_remove(self, client, client_headers):
        created = client.post(
            "/users/invoices",
            json={"url": "https://cdn.test/facture.pdf", "date": "2024-03-01T10:00:00", "amount": 120.5},
            headers=client_headers,
        )
        assert created.status_code == 201
        invoice_id = created.json()["id"]
        assert created.json()["status"] == "recorded"

        listed = client.get("/users/invoices", headers=client_headers)
        assert [i["id"] for i in listed.json()] == [invoice_id]

        removed = client.delete(f"/users/invoices/{invoice_id}", headers=client_headers)
        assert removed.status_code == 200
        assert client.get("/users/invoices", headers=client_headers).json() == []

    def test_remove_other_users_invoice(self, client, db, client_headers):
        other = make_user(db, user_id="user-2", email="autre@example.com")
        db.add(Invoice(id="inv-other", user_id=other.id, amount=10, items=[]))
        db.commit()

        response = client.delete("/users/invoices/inv-other", headers=client_headers)

        assert response.status_code == 404


class TestAdminUsers:
    """Test admin-only user management"""

    def test_list_requires_admin(self, client, client_headers):
        response = client.get("/users", headers=client_headers)

        assert response.status_code == 403

    def test_list_users(self, client, client_user, admin_headers):
        response = client.get("/users?page=1&limit=10", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 2
        assert {u["id"] for u in data["users"]} == {client_user.id, "admin-1"}

    def test_list_by_role(self, client, client_user, admin_headers):
        response = client.get("/users/role/client", headers=admin_headers)

        assert [u["id"] for u in response.json()["users"]] == [client_user.id]

    def test_limit_capped(self, client, admin_headers):
        response = client.get("/users?limit=500", headers=admin_headers)

        assert response.status_code == 400

    def test_get_by_email(self, client, client_user, admin_headers):
        response = client.get(f"/users/email/{client_user.email}", headers=admin_headers)

        assert response.json()["id"] == client_user.id

    def test_create_user(self, client, admin_headers, mock_firebase):
        mock_firebase["get_user"].return_value = MagicMock(email_verified=True)

        response = client.post(
            "/users",
            json={"id": "uid-admin-made", "email": "Nouveau@Example.com", "name": "Nouveau", "phone": "+33 6 00 00 00 00"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "nouveau@example.com"
        assert data["emailVerified"] is True
        mock_firebase["ensure_role_claim"].assert_called_once_with("uid-admin-made", "client")

    def test_create_user_without_firebase_account(self, client, admin_headers, mock_firebase):
        mock_firebase["get_user"].side_effect = Exception("USER_NOT_FOUND")

        response = client.post(
            "/users",
            json={"id": "uid-missing", "email": "absent@example.com", "name": "Absent", "phone": "+33600000000"},
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_promote_to_admin_syncs_claim(self, client, client_user, admin_headers, mock_firebase):
        response = client.put(f"/users/{client_user.id}", json={"role": "admin"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "admin"
        mock_firebase["ensure_role_claim"].assert_called_once_with(client_user.id, "admin")

    def test_delete_user(self, client, db, client_user, admin_headers, mock_firebase):
        user_id = client_user.id

        response = client.delete(f"/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        mock_firebase["delete_user"].assert_called_once_with(user_id)
        db.expire_all()
        assert db.query(User).filter(User.id == user_id).first() is None

    def test_get_missing_user(self, client, admin_headers):
        response = client.get("/users/nobody", headers=admin_headers)

        assert response.status_code == 404

    def test_token_of_deleted_user_rejected(self, client, db):
        ghost = make_user(db, user_id="ghost", email="ghost@example.com")
        headers = auth_headers(ghost)
        db.delete(ghost)
        db.commit()

        assert client.get("/users/profile", headers=headers).status_code == 401
