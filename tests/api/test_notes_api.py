"""Tests for notes."""

import pytest


@pytest.fixture
def note(client, joined_space, admin_headers):
    response = client.post(
        f"/api/v1/spaces/{joined_space['id']}/notes",
        json={"title": "Reading list", "blocks": [{"type": "paragraph", "text": "Dune"}]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestNotes:
    """Tests for note CRUD and authorship."""

    def test_create_defaults_to_draft(self, note):
        assert note["status"] == "draft"
        assert note["published_at"] is None
        assert note["author"]["username"] == "demo-admin"

    def test_members_can_read(self, client, joined_space, note, member_headers):
        listed = client.get(f"/api/v1/spaces/{joined_space['id']}/notes", headers=member_headers).json()
        assert [n["id"] for n in listed] == [note["id"]]
        assert client.get(f"/api/v1/notes/{note['id']}", headers=member_headers).json()["title"] == "Reading list"

    def test_list_orders_by_last_update(self, client, joined_space, note, admin_headers):
        url = f"/api/v1/spaces/{joined_space['id']}/notes"
        second = client.post(url, json={"title": "Second"}, headers=admin_headers).json()
        client.patch(f"/api/v1/notes/{note['id']}", json={"title": "Reading list v2"}, headers=admin_headers)

        listed = client.get(url, headers=admin_headers).json()
        assert [n["id"] for n in listed] == [note["id"], second["id"]]

    def test_only_author_edits(self, client, note, member_headers):
        response = client.patch(f"/api/v1/notes/{note['id']}", json={"title": "Mine now"}, headers=member_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Only the author can edit this note"

    def test_only_author_deletes(self, client, note, member_headers, admin_headers):
        response = client.delete(f"/api/v1/notes/{note['id']}", headers=member_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Only the author can delete this note"

        assert client.delete(f"/api/v1/notes/{note['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/notes/{note['id']}", headers=admin_headers).status_code == 404

    def test_outsider_cannot_read(self, client, note, sign_in_as):
        outsider = sign_in_as("outsider@example.com")
        response = client.get(f"/api/v1/notes/{note['id']}", headers=outsider)
        assert response.status_code == 403


class TestPublishing:
    def test_published_at_stamped_once(self, client, note, admin_headers):
        """Test that re-publishing keeps the first publication time."""
        url = f"/api/v1/notes/{note['id']}"
        published = client.patch(url, json={"status": "published"}, headers=admin_headers).json()
        assert published["status"] == "published"
        first_stamp = published["published_at"]
        assert first_stamp is not None

        client.patch(url, json={"status": "draft"}, headers=admin_headers)
        again = client.patch(url, json={"status": "published"}, headers=admin_headers).json()
        assert again["published_at"] == first_stamp

    def test_create_published(self, client, joined_space, admin_headers):
        response = client.post(
            f"/api/v1/spaces/{joined_space['id']}/notes",
            json={"title": "Announcement", "status": "published"},
            headers=admin_headers,
        )
        assert response.json()["published_at"] is not None
