"""
Tests for contact messages, replies, stats and CSV export.
"""

import csv
from datetime import datetime, timedelta
from io import StringIO

from conftest import auth_headers, make_user

from ouest_services.models import Contact, utcnow


def _payload(**overrides) -> dict:
    payload = {
        "name": "Claire Martin",
        "email": "claire@example.com",
        "phone": "0699887766",
        "subjects": ["Devis", "Question"],
        "message": "Bonjour, pouvez-vous me rappeler ?",
    }
    payload.update(overrides)
    return payload


class TestCreateContact:
    """Test the public contact form"""

    def test_create(self, client, mock_send_email):
        response = client.post("/contacts", json=_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["subjects"] == "Devis-Question"
        assert data["subjectsArray"] == ["Devis", "Question"]
        assert data["subjectsCount"] == 2
        assert data["phone"] == "+33699887766"
        assert data["phoneValid"] is True
        assert data["emailStatus"]["adminSent"] is True
        assert mock_send_email.await_count == 2

    def test_subjects_as_string(self, client):
        response = client.post("/contacts", json=_payload(subjects="Devis, Rendez-vous"))

        assert response.json()["subjectsArray"] == ["Devis", "Rendez", "vous"]

    def test_email_failure_keeps_message_pending(self, client, mock_send_email):
        mock_send_email.side_effect = Exception("resend down")

        response = client.post("/contacts", json=_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["emailStatus"]["clientSent"] is False

    def test_invalid_email(self, client):
        response = client.post("/contacts", json=_payload(email="pas-un-email"))

        assert response.status_code == 400


class TestContactManagement:
    """Test owner/admin access, replies and soft delete"""

    def test_owner_reads_own_message(self, client, client_headers):
        created = client.post("/contacts", json=_payload(), headers=client_headers).json()

        assert client.get(f"/contacts/{created['id']}", headers=client_headers).status_code == 200

    def test_other_user_forbidden(self, client, db, client_headers):
        created = client.post("/contacts", json=_payload(), headers=client_headers).json()
        other = make_user(db, user_id="user-2", email="autre@example.com")

        assert client.get(f"/contacts/{created['id']}", headers=auth_headers(other)).status_code == 403

    def test_update_status(self, client, admin_headers):
        created = client.post("/contacts", json=_payload()).json()

        response = client.put(f"/contacts/{created['id']}", json=_payload(status="archived"), headers=admin_headers)

        assert response.json()["status"] == "archived"
        assert response.json()["statusLabel"] == "Archivé"

    def test_reply(self, client, admin_headers, mock_send_email):
        created = client.post("/contacts", json=_payload()).json()
        mock_send_email.reset_mock()

        response = client.post(
            f"/contacts/{created['id']}/reply",
            json={"reply": "Nous vous rappelons cet après-midi."},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "replied"
        mock_send_email.assert_awaited_once()

    def test_short_reply_rejected(self, client, admin_headers):
        created = client.post("/contacts", json=_payload()).json()

        response = client.post(
            f"/contacts/{created['id']}/reply", json={"reply": "   ok      "}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_soft_delete(self, client, client_headers, admin_headers):
        created = client.post("/contacts", json=_payload(), headers=client_headers).json()

        assert client.delete(f"/contacts/{created['id']}", headers=client_headers).status_code == 200
        assert client.get(f"/contacts/{created['id']}", headers=client_headers).status_code == 404
        assert client.get(f"/contacts/{created['id']}", headers=admin_headers).json()["status"] == "deleted"

    def test_list_filters(self, client, admin_headers):
        client.post("/contacts", json=_payload())
        client.post("/contacts", json=_payload(name="Paul Durand", email="paul@example.com"))

        response = client.get("/contacts?email=PAUL@example.com", headers=admin_headers)

        assert [c["name"] for c in response.json()["contacts"]] == ["Paul Durand"]

    def test_date_range_with_offset(self, client, db, admin_headers):
        db.add_all(
            [
                Contact(name="Matin", email="matin@example.com", message="m" * 20, created_at=datetime(2025, 6, 1, 10)),
                Contact(name="Midi", email="midi@example.com", message="m" * 20, created_at=datetime(2025, 6, 1, 12)),
            ]
        )
        db.commit()

        response = client.get(
            "/contacts", params={"dateTo": "2025-06-01T13:00:00+02:00"}, headers=admin_headers
        )

        assert [c["name"] for c in response.json()["contacts"]] == ["Matin"]


class TestContactStats:
    """Test aggregate statistics"""

    def test_stats(self, client, db, admin_headers):
        now = utcnow()
        db.add_all(
            [
                Contact(name="A", email="a@example.com", message="m" * 10, subjects="Devis", status="pending"),
                Contact(
                    name="B",
                    email="b@example.com",
                    message="m" * 30,
                    status="replied",
                    created_at=now - timedelta(days=3),
                    replied_at=now - timedelta(days=1),
                ),
                Contact(
                    name="C",
                    email="c@example.com",
                    message="m" * 20,
                    status="replied",
                    created_at=now - timedelta(days=4),
                    replied_at=now,
                ),
            ]
        )
        db.commit()

        response = client.get("/contacts/stats", headers=admin_headers)

        assert response.status_code == 200
        stats = response.json()
        assert stats["total"] == 3
        assert stats["pending"] == 1
        assert stats["replied"] == 2
        assert stats["withSubjects"] == 1
        assert stats["averageMessageLength"] == 20
        assert round(stats["fastestReply"]) == 2
        assert round(stats["slowestReply"]) == 4
        assert round(stats["averageDaysToReply"]) == 3

    def test_empty_stats(self, client, admin_headers):
        stats = client.get("/contacts/stats", headers=admin_headers).json()

        assert stats["total"] == 0
        assert stats["fastestReply"] is None


class TestCsvExport:
    """Test the CSV export"""

    def test_export(self, client, db, admin_headers):
        db.add(
            Contact(
                id="c-1",
                name='Jean "Jo" Dupont',
                email="jean@example.com",
                phone="+33612345678",
                subjects="Devis",
                message="Ligne 1\nLigne 2",
                status="pending",
                created_at=utcnow().replace(year=2024, month=5, day=2),
            )
        )
        db.commit()

        response = client.get("/contacts/export", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=contacts_export_" in response.headers["content-disposition"]
        lines = response.text.split("\n")
        assert lines[0] == "ID,Nom,Email,Téléphone,Sujets,Message,Statut,Créé le,Répondu le"
        row = next(csv.reader(StringIO(lines[1])))
        assert row == [
            "c-1",
            'Jean "Jo" Dupont',
            "jean@example.com",
            "+33612345678",
            "Devis",
            "Ligne 1 Ligne 2",
            "En attente",
            "02/05/2024",
            "",
        ]
        assert lines[1].startswith('"c-1","Jean ""Jo"" Dupont"')

    def test_export_requires_admin(self, client, client_headers):
        assert client.get("/contacts/export", headers=client_headers).status_code == 403
