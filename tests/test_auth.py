"""
Tests for the auth endpoints with Firebase and Resend mocked.
"""

from datetime import timedelta
from unittest.mock import MagicMock

from conftest import auth_headers, make_user

from ouest_services.domain.challenges.service import EMAIL_CHANGE, EMAIL_VERIFICATION, PASSWORD_RESET
from ouest_services.models import PendingCode, User, utcnow
from ouest_services.security_utils import create_scoped_token, verify_jwt_token

FIREBASE_TOKEN = "firebase-id-token-123"
FCM_TOKEN = "f" * 120


def _pending_code(db, purpose, email) -> PendingCode:
    db.expire_all()
    return db.query(PendingCode).filter(PendingCode.purpose == purpose, PendingCode.email == email).first()


def _decoded(uid="uid-new", email="marie@example.com", verified=False) -> dict:
    return {"uid": uid, "email": email, "email_verified": verified}


def _signup_payload(**overrides) -> dict:
    payload = {
        "firebaseToken": FIREBASE_TOKEN,
        "email": "marie@example.com",
        "name": "Marie Curie",
        "phone": "+33 6 12 34 56 78",
        "address": {"street": "12 rue de la Paix", "city": "Rennes", "postalCode": "35000"},
    }
    payload.update(overrides)
    return payload


class TestHealthEndpoints:
    """Test health and root endpoints"""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "running" in response.json()["message"]

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert response.json()["status"] == "error"


class TestSignUp:
    """Test user signup"""

    def test_signup_success(self, client, db, mock_firebase, mock_send_email):
        mock_firebase["verify_id_token"].return_value = _decoded()

        response = client.post("/auth/signup", json=_signup_payload(role="admin", fcmToken=FCM_TOKEN))

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["id"] == "uid-new"
        assert data["user"]["role"] == "client"
        assert data["user"]["preferences"]["fcmToken"] == FCM_TOKEN
        assert verify_jwt_token(data["token"])["userId"] == "uid-new"
        mock_firebase["ensure_role_claim"].assert_called_once_with("uid-new", "client")
        assert _pending_code(db, EMAIL_VERIFICATION, "marie@example.com") is not None
        mock_send_email.assert_awaited()

    def test_signup_short_fcm_token_ignored(self, client, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded()

        response = client.post("/auth/signup", json=_signup_payload(fcmToken="short"))

        assert response.status_code == 201
        assert response.json()["user"]["preferences"]["fcmToken"] is None

    def test_signup_duplicate_user(self, client, db, mock_firebase):
        make_user(db, user_id="uid-new", email="other@example.com")
        mock_firebase["verify_id_token"].return_value = _decoded()

        response = client.post("/auth/signup", json=_signup_payload())

        assert response.status_code == 409
        assert response.json()["message"] == "Utilisateur déjà existant"

    def test_signup_duplicate_email(self, client, db, mock_firebase):
        make_user(db, user_id="someone-else", email="marie@example.com")
        mock_firebase["verify_id_token"].return_value = _decoded()

        response = client.post("/auth/signup", json=_signup_payload())

        assert response.status_code == 409

    def test_signup_email_mismatch(self, client, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded(email="other@example.com")

        response = client.post("/auth/signup", json=_signup_payload())

        assert response.status_code == 400

    def test_signup_invalid_phone(self, client):
        response = client.post("/auth/signup", json=_signup_payload(phone="0612345678"))

        assert response.status_code == 400
        assert response.json()["message"] == "Données invalides"

    def test_signup_cleans_up_when_code_email_fails(self, client, db, mock_firebase, mock_send_email):
        mock_firebase["verify_id_token"].return_value = _decoded()
        mock_send_email.side_effect = Exception("resend down")

        response = client.post("/auth/signup", json=_signup_payload())

        assert response.status_code == 500
        mock_firebase["delete_user"].assert_called_once_with("uid-new")
        db.expire_all()
        assert db.query(User).filter(User.id == "uid-new").first() is None


class TestSignIn:
    """Test signin, refresh, signout and token exchange"""

    def test_signin_success(self, client, db, client_user, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded(uid=client_user.id, email=client_user.email)

        response = client.post("/auth/signin", json={"firebaseToken": FIREBASE_TOKEN, "fcmToken": FCM_TOKEN})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == client_user.id
        assert data["user"]["preferences"]["fcmToken"] == FCM_TOKEN
        assert verify_jwt_token(data["token"])["role"] == "client"

    def test_signin_unknown_profile(self, client, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded(uid="ghost")

        response = client.post("/auth/signin", json={"firebaseToken": FIREBASE_TOKEN})

        assert response.status_code == 404

    def test_refresh_returns_new_token(self, client, client_user, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded(uid=client_user.id)

        response = client.post("/auth/refresh", json={"firebaseToken": FIREBASE_TOKEN})

        assert response.status_code == 200
        assert response.json()["userId"] == client_user.id

    def test_signout_revokes_tokens(self, client, client_user, mock_firebase):
        mock_firebase["verify_id_token"].return_value = _decoded(uid=client_user.id)

        response = client.post("/auth/signout", json={"firebaseToken": FIREBASE_TOKEN})

        assert response.status_code == 200
        mock_firebase["revoke_refresh_tokens"].assert_called_once_with(client_user.id)

    def test_verify_token_syncs_missing_profile(self, client, db, mock_firebase):
        mock_firebase["verify_id_token"].return_value = {"uid": "uid-sync", "email": "Sync@Example.com"}

        response = client.post("/auth/verify-token", json={"firebaseToken": FIREBASE_TOKEN})

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "sync@example.com"
        assert user["name"] == "Utilisateur Anonyme"

    def test_verify_token_email_conflict(self, client, db, mock_firebase):
        make_user(db, user_id="existing", email="sync@example.com")
        mock_firebase["verify_id_token"].return_value = {"uid": "uid-sync", "email": "sync@example.com"}

        response = client.post("/auth/verify-token", json={"firebaseToken": FIREBASE_TOKEN})

        assert response.status_code == 409

    def test_email_link_signin(self, client, mock_firebase, mock_send_email):
        response = client.post("/auth/email-link-signin", json={"email": "jean@example.com"})

        assert response.status_code == 200
        mock_firebase["generate_signin_link"].assert_called_once_with("jean@example.com")
        mock_send_email.assert_awaited_once()


class TestEmailVerification:
    """Test the email verification code flow"""

    def test_verification_success(self, client, db, client_user, mock_firebase):
        client.post("/auth/verify-email", json={"email": client_user.email})
        code = _pending_code(db, EMAIL_VERIFICATION, client_user.email).code

        response = client.post("/auth/verify-email-code", json={"email": client_user.email, "code": code})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Email vérifié",
            "redirect": "/dashboard.html",
            "resetToken": None,
            "changeToken": None,
        }
        mock_firebase["update_user"].assert_called_once_with(client_user.id, email_verified=True)

    def test_expired_code_redirects_to_code_check(self, client, db, client_user, mock_send_email):
        client.post("/auth/verify-email", json={"email": client_user.email})
        row = _pending_code(db, EMAIL_VERIFICATION, client_user.email)
        code = row.code
        row.expires_at = utcnow() - timedelta(minutes=5)
        db.commit()

        response = client.post("/auth/verify-email-code", json={"email": client_user.email, "code": code})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["redirect"] == "/pages/auth/code-check.html"
        assert mock_send_email.await_count == 2

    def test_wrong_code(self, client, db, client_user):
        client.post("/auth/verify-email", json={"email": client_user.email})
        code = _pending_code(db, EMAIL_VERIFICATION, client_user.email).code
        wrong = "999999" if code != "999999" else "999998"

        response = client.post("/auth/verify-email-code", json={"email": client_user.email, "code": wrong})

        assert response.status_code == 400
        assert response.json()["message"] == "Code de vérification invalide"

    def test_malformed_code(self, client):
        response = client.post("/auth/verify-email-code", json={"email": "jean@example.com", "code": "12ab"})

        assert response.status_code == 400


class TestPasswordReset:
    """Test password reset via code then scoped grant"""

    def test_full_reset_flow(self, client, db, client_user, mock_firebase):
        mock_firebase["get_user_by_email"].return_value = MagicMock(uid=client_user.id)
        client.post("/auth/password-reset", json={"email": client_user.email})
        code = _pending_code(db, PASSWORD_RESET, client_user.email).code

        verify = client.post("/auth/verify-password-reset-code", json={"email": client_user.email, "code": code})
        assert verify.status_code == 200
        reset_token = verify.json()["resetToken"]
        assert verify.json()["redirect"] == "/pages/auth/reset-password.html"

        response = client.post(
            "/auth/update-password",
            json={"email": client_user.email, "newPassword": "NouveauMotDePasse1", "resetToken": reset_token},
        )

        assert response.status_code == 200
        mock_firebase["update_user"].assert_called_once_with(client_user.id, password="NouveauMotDePasse1")

    def test_update_password_requires_grant(self, client, client_user, mock_firebase):
        response = client.post(
            "/auth/update-password",
            json={"email": client_user.email, "newPassword": "NouveauMotDePasse1", "resetToken": "forged"},
        )

        assert response.status_code == 401
        mock_firebase["update_user"].assert_not_called()

    def test_grant_for_another_email_rejected(self, client, client_user):
        token = create_scoped_token("other@example.com", "password_reset")

        response = client.post(
            "/auth/update-password",
            json={"email": client_user.email, "newPassword": "NouveauMotDePasse1", "resetToken": token},
        )

        assert response.status_code == 401


class TestEmailChange:
    """Test the two-step email change"""

    def test_full_change_flow(self, client, db, client_user, mock_firebase):
        headers = auth_headers(client_user)

        assert client.post("/auth/request-new-email", headers=headers).status_code == 200
        code = _pending_code(db, EMAIL_CHANGE, client_user.email).code
        step_one = client.post("/auth/verify-change-email-code", json={"email": client_user.email, "code": code})
        change_token = step_one.json()["changeToken"]
        assert change_token

        response = client.post(
            "/auth/confirm-new-email",
            json={"newEmail": "nouveau@example.com", "changeToken": change_token},
            headers=headers,
        )
        assert response.status_code == 200

        code = _pending_code(db, EMAIL_CHANGE, "nouveau@example.com").code
        final = client.post("/auth/verify-change-email-code", json={"email": "nouveau@example.com", "code": code})

        assert final.status_code == 200
        assert final.json()["success"] is True
        db.expire_all()
        assert db.query(User).filter(User.id == client_user.id).first().email == "nouveau@example.com"
        mock_firebase["update_user"].assert_called_once_with(
            client_user.id, email="nouveau@example.com", email_verified=True
        )

    def test_confirm_requires_change_token(self, client, client_user):
        response = client.post(
            "/auth/confirm-new-email",
            json={"newEmail": "nouveau@example.com", "changeToken": "nope"},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 401

    def test_confirm_rejects_taken_email(self, client, db, client_user):
        make_user(db, user_id="user-2", email="pris@example.com")
        token = create_scoped_token(client_user.email, "email_change")

        response = client.post(
            "/auth/confirm-new-email",
            json={"newEmail": "pris@example.com", "changeToken": token},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 409

    def test_code_survives_new_email_taken_meanwhile(self, client, db, client_user, mock_firebase):
        user_id, current_email = client_user.id, client_user.email
        db.add(
            PendingCode(
                purpose=EMAIL_CHANGE,
                email="nouveau@example.com",
                code="123456",
                expires_at=utcnow() + timedelta(minutes=10),
                payload={"current_email": current_email, "new_email": "nouveau@example.com", "name": "Jean"},
            )
        )
        db.commit()
        rival = make_user(db, user_id="user-2", email="nouveau@example.com")

        taken = client.post("/auth/verify-change-email-code", json={"email": "nouveau@example.com", "code": "123456"})

        assert taken.status_code == 409
        assert _pending_code(db, EMAIL_CHANGE, "nouveau@example.com") is not None
        mock_firebase["update_user"].assert_not_called()

        db.delete(rival)
        db.commit()
        retried = client.post("/auth/verify-change-email-code", json={"email": "nouveau@example.com", "code": "123456"})

        assert retried.status_code == 200
        assert _pending_code(db, EMAIL_CHANGE, "nouveau@example.com") is None
        assert db.query(User).filter(User.id == user_id).first().email == "nouveau@example.com"

    def test_request_new_email_requires_auth(self, client):
        response = client.post("/auth/request-new-email")

        assert response.status_code == 401
