"""
Tests for the booking form, owner/admin management and the admin list.
"""

from datetime import datetime

from conftest import auth_headers, make_user

from ouest_services.models import Reservation


def _payload(**overrides) -> dict:
    payload = {
        "serviceId": "svc-1",
        "serviceName": "Nettoyage de bureaux",
        "serviceCategory": "bureaux",
        "name": "Jean Dupont",
        "email": "Jean@Example.com",
        "phone": "06 12 34 56 78",
        "address": "12 rue de la Paix, Rennes",
        "date": "2025-06-15",
        "frequency": "hebdomadaire",
        "options": ["vitres", "sols"],
        "message": "Bonjour, je souhaite un devis pour nos bureaux.",
        "consentement": "on",
    }
    payload.update(overrides)
    return payload


class TestCreateReservation:
    """Test the public booking endpoint"""

    def test_anonymous_booking(self, client, mock_send_email):
        response = client.post("/reservations", json=_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["userId"] is None
        assert data["email"] == "jean@example.com"
        assert data["phone"] == "+33612345678"
        assert data["phoneValid"] is True
        assert data["options"] == "vitres-sols"
        assert data["optionsArray"] == ["vitres", "sols"]
        assert data["optionsCount"] == 2
        assert data["status"] == "pending"
        assert data["statusLabel"] == "En attente"
        assert data["consentementAccepted"] is True
        assert data["emailStatus"]["clientSent"] is True
        assert data["emailStatus"]["adminSent"] is True
        assert mock_send_email.await_count == 2

    def test_signed_in_booking_is_owned(self, client, client_user, client_headers):
        response = client.post("/reservations", json=_payload(), headers=client_headers)

        assert response.json()["userId"] == client_user.id

    def test_html_is_stripped(self, client):
        response = client.post(
            "/reservations", json=_payload(message="<b>Bonjour</b> <script>x</script>je veux un devis")
        )

        assert "<" not in response.json()["message"]

    def test_email_failure_keeps_reservation(self, client, db, mock_send_email):
        mock_send_email.side_effect = Exception("resend down")

        response = client.post("/reservations", json=_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "created_email_failed"
        assert data["errorMessage"] == "resend down"
        assert data["emailStatus"]["clientSent"] is False
        assert db.query(Reservation).count() == 1

    def test_consent_required(self, client):
        response = client.post("/reservations", json=_payload(consentement=False))

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "consentement"

    def test_message_too_short(self, client):
        response = client.post("/reservations", json=_payload(message="court"))

        assert response.status_code == 400

    def test_unknown_frequency(self, client):
        response = client.post("/reservations", json=_payload(frequency="quotidienne"))

        assert response.status_code == 400

    def test_long_message_preview(self, client):
        response = client.post("/reservations", json=_payload(message="a" * 150))

        preview = response.json()["messagePreview"]
        assert preview == "a" * 100 + "..."


class TestReservationAccess:
    """Test owner/admin access rules"""

    def test_owner_can_read(self, client, client_headers):
        created = client.post("/reservations", json=_payload(), headers=client_headers).json()

        response = client.get(f"/reservations/{created['id']}", headers=client_headers)

        assert response.status_code == 200

    def test_other_client_forbidden(self, client, db, client_headers):
        created = client.post("/reservations", json=_payload(), headers=client_headers).json()
        other = make_user(db, user_id="user-2", email="autre@example.com")

        response = client.get(f"/reservations/{created['id']}", headers=auth_headers(other))

        assert response.status_code == 403

    def test_anonymous_booking_admin_only(self, client, client_headers, admin_headers):
        created = client.post("/reservations", json=_payload()).json()

        assert client.get(f"/reservations/{created['id']}", headers=client_headers).status_code == 403
        assert client.get(f"/reservations/{created['id']}", headers=admin_headers).status_code == 200

    def test_update(self, client, client_headers):
        created = client.post("/reservations", json=_payload(), headers=client_headers).json()

        response = client.put(
            f"/reservations/{created['id']}",
            json=_payload(frequency="mensuelle", options=None, status="confirmed"),
            headers=client_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["frequency"] == "mensuelle"
        assert data["options"] is None
        assert data["status"] == "confirmed"

    def test_soft_delete(self, client, db, client_headers, admin_headers):
        created = client.post("/reservations", json=_payload(), headers=client_headers).json()

        response = client.delete(f"/reservations/{created['id']}", headers=client_headers)

        assert response.status_code == 200
        assert client.get(f"/reservations/{created['id']}", headers=client_headers).status_code == 404
        admin_view = client.get(f"/reservations/{created['id']}", headers=admin_headers)
        assert admin_view.json()["status"] == "deleted"
        db.expire_all()
        row = db.query(Reservation).filter(Reservation.id == created["id"]).first()
        assert row.deleted_by == "user-1"
        assert row.deleted_at is not None

    def test_missing(self, client, admin_headers):
        assert client.get("/reservations/nope", headers=admin_headers).status_code == 404


class TestReply:
    """Test admin replies"""

    def test_reply(self, client, admin_headers, mock_send_email):
        created = client.post("/reservations", json=_payload()).json()
        mock_send_email.reset_mock()

        response = client.post(
            f"/reservations/{created['id']}/reply",
            json={"reply": "  Merci, nous vous rappelons demain.  "},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "replied"
        assert data["reply"] == "Merci, nous vous rappelons demain."
        assert data["repliedAt"] is not None
        assert data["emailStatus"]["replySent"] is True
        mock_send_email.assert_awaited_once()
        assert mock_send_email.await_args.kwargs["to"] == "jean@example.com"

    def test_reply_email_failure_recorded(self, client, admin_headers, mock_send_email):
        created = client.post("/reservations", json=_payload()).json()
        mock_send_email.side_effect = Exception("resend down")

        response = client.post(
            f"/reservations/{created['id']}/reply",
            json={"reply": "Merci, nous vous rappelons demain."},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["emailStatus"]["replySent"] is False

    def test_reply_requires_admin(self, client, client_headers):
        created = client.post("/reservations", json=_payload(), headers=client_headers).json()

        response = client.post(
            f"/reservations/{created['id']}/reply",
            json={"reply": "Merci, nous vous rappelons demain."},
            headers=client_headers,
        )

        assert response.status_code == 403


class TestAdminList:
    """Test filtering, sorting and the summary block"""

    def _seed(self, client, admin_headers):
        first = client.post("/reservations", json=_payload(name="Alice Martin")).json()
        client.post(
            "/reservations",
            json=_payload(name="Bruno Petit", email="bruno@example.com", options=None, message="b" * 20),
        )
        client.put(
            f"/reservations/{first['id']}",
            json=_payload(name="Alice Martin", status="confirmed"),
            headers=admin_headers,
        )

    def test_list_with_summary(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 2
        summary = data["summary"]
        assert summary["total"] == 2
        assert summary["pending"] == 1
        assert summary["confirmed"] == 1
        assert summary["withOptions"] == 1

    def test_filter_by_status(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations?status=confirmed", headers=admin_headers)

        names = [r["name"] for r in response.json()["reservations"]]
        assert names == ["Alice Martin"]

    def test_filter_by_name_is_partial(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations?name=brun", headers=admin_headers)

        assert [r["name"] for r in response.json()["reservations"]] == ["Bruno Petit"]

    def test_has_options_filter(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations?hasOptions=false", headers=admin_headers)

        assert [r["name"] for r in response.json()["reservations"]] == ["Bruno Petit"]

    def test_sort_by_name(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations?sortBy=name&sortOrder=asc", headers=admin_headers)

        assert [r["name"] for r in response.json()["reservations"]] == ["Alice Martin", "Bruno Petit"]

    def test_pagination(self, client, admin_headers):
        self._seed(client, admin_headers)

        response = client.get("/reservations?page=2&limit=1", headers=admin_headers)

        data = response.json()
        assert len(data["reservations"]) == 1
        assert data["pagination"]["hasPrev"] is True
        assert data["pagination"]["hasNext"] is False

    def test_invalid_sort_field(self, client, admin_headers):
        response = client.get("/reservations?sortBy=password", headers=admin_headers)

        assert response.status_code == 400

    def test_list_requires_admin(self, client, client_headers):
        assert client.get("/reservations", headers=client_headers).status_code == 403

    def test_date_range_with_offset(self, client, db, admin_headers):
        for name, hour in (("Matin", 10), ("Midi", 12)):
            db.add(
                Reservation(
                    service_id="svc-1",
                    service_name="Nettoyage de bureaux",
                    service_category="bureaux",
                    name=name,
                    email=f"{name.lower()}@example.com",
                    address="12 rue de la Paix, Rennes",
                    date="2025-06-15",
                    frequency="ponctuel",
                    message="Bonjour, un devis svp.",
                    consentement=True,
                    created_at=datetime(2025, 6, 1, hour),
                )
            )
        db.commit()

        # 13:00 in Paris summer time is 11:00 UTC
        response = client.get(
            "/reservations", params={"dateFrom": "2025-06-01T13:00:00+02:00"}, headers=admin_headers
        )

        assert [r["name"] for r in response.json()["reservations"]] == ["Midi"]
