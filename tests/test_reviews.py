"""
Tests for service reviews and review photos.
"""

import pytest
from botocore.exceptions import ClientError
from conftest import auth_headers, make_user

from ouest_services.models import CatalogService, Review

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def catalog_service(db):
    provider = make_user(
        db,
        user_id="provider-1",
        email="prestataire@example.com",
        preferences={"notifications": True, "language": "fr", "fcmToken": "p" * 120},
    )
    service = CatalogService(
        id="svc-1",
        name="Vitrines",
        description="Nettoyage des vitrines de magasin.",
        price=30,
        category="vitrines",
        images=[],
        provider_id=provider.id,
    )
    db.add(service)
    db.commit()
    return service


def _create(client, headers, **overrides) -> dict:
    payload = {"serviceId": "svc-1", "rating": 4, "comment": "Très bon travail, équipe ponctuelle."}
    payload.update(overrides)
    return client.post("/reviews", json=payload, headers=headers)


class TestReviews:
    """Test review CRUD and listing"""

    def test_create_notifies_provider(self, client, catalog_service, client_headers, mock_firebase):
        response = _create(client, client_headers)

        assert response.status_code == 201
        assert response.json()["userId"] == "user-1"
        mock_firebase["send_push"].assert_called_once()
        assert mock_firebase["send_push"].call_args.args[1] == "Nouvel avis reçu"

    def test_create_for_unknown_service(self, client, client_headers):
        response = _create(client, client_headers, serviceId="ghost")

        assert response.status_code == 404

    def test_rating_bounds(self, client, catalog_service, client_headers):
        assert _create(client, client_headers, rating=6).status_code == 400
        assert _create(client, client_headers, rating=0).status_code == 400

    def test_requires_auth(self, client, catalog_service):
        assert _create(client, {}).status_code == 401

    def test_list_for_service_is_public(self, client, catalog_service, client_headers):
        _create(client, client_headers)

        response = client.get("/reviews/service/svc-1")

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    def test_list_mine(self, client, db, catalog_service, client_headers):
        _create(client, client_headers)
        other = make_user(db, user_id="user-2", email="autre@example.com")
        _create(client, auth_headers(other))

        response = client.get("/reviews/mine", headers=client_headers)

        assert [r["userId"] for r in response.json()["reviews"]] == ["user-1"]

    def test_update_by_owner(self, client, catalog_service, client_headers):
        review = _create(client, client_headers).json()

        response = client.put(f"/reviews/{review['id']}", json={"rating": 5}, headers=client_headers)

        assert response.status_code == 200
        assert response.json()["rating"] == 5
        assert response.json()["comment"] == review["comment"]

    def test_update_by_other_user_forbidden(self, client, db, catalog_service, client_headers):
        review = _create(client, client_headers).json()
        other = make_user(db, user_id="user-2", email="autre@example.com")

        response = client.put(f"/reviews/{review['id']}", json={"rating": 1}, headers=auth_headers(other))

        assert response.status_code == 403

    def test_delete_by_admin(self, client, catalog_service, client_headers, admin_headers):
        review = _create(client, client_headers).json()

        assert client.delete(f"/reviews/{review['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/reviews/{review['id']}").status_code == 404


class TestReviewImages:
    """Test review photos"""

    def test_upload_and_remove(self, client, catalog_service, client_headers, mock_r2):
        review = _create(client, client_headers).json()

        uploaded = client.post(
            f"/reviews/{review['id']}/images",
            files={"file": ("avant.jpg", PNG_BYTES, "image/jpeg")},
            headers=client_headers,
        )
        assert uploaded.status_code == 200
        image = uploaded.json()["images"][0]
        assert image["fileKey"].startswith(f"reviews/{review['id']}/")

        removed = client.delete(
            f"/reviews/{review['id']}/images", params={"fileUrl": image["url"]}, headers=client_headers
        )
        assert removed.status_code == 200
        assert removed.json()["images"] == []
        mock_r2.delete_object.assert_called_once()

    def test_photo_limit(self, client, catalog_service, client_headers):
        review = _create(client, client_headers).json()
        for _ in range(5):
            client.post(
                f"/reviews/{review['id']}/images",
                files={"file": ("photo.png", PNG_BYTES, "image/png")},
                headers=client_headers,
            )

        response = client.post(
            f"/reviews/{review['id']}/images",
            files={"file": ("photo.png", PNG_BYTES, "image/png")},
            headers=client_headers,
        )

        assert response.status_code == 400

    def test_oversized_upload(self, client, catalog_service, client_headers):
        review = _create(client, client_headers).json()

        response = client.post(
            f"/reviews/{review['id']}/images",
            files={"file": ("huge.png", b"0" * (5 * 1024 * 1024 + 1), "image/png")},
            headers=client_headers,
        )

        assert response.status_code == 413

    def test_remove_image_already_gone_from_storage(
        self, client, db, catalog_service, client_user, client_headers, mock_r2
    ):
        db.add(
            Review(
                id="rev-1",
                user_id=client_user.id,
                service_id="svc-1",
                rating=5,
                comment="Parfait.",
                images=[{"url": "https://cdn.test/x.png", "fileKey": "reviews/rev-1/x.png"}],
            )
        )
        db.commit()
        mock_r2.head_object.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadObject")

        response = client.delete(
            "/reviews/rev-1/images", params={"fileUrl": "https://cdn.test/x.png"}, headers=client_headers
        )

        assert response.status_code == 200
        assert response.json()["images"] == []
        mock_r2.delete_object.assert_not_called()
