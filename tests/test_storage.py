"""Image uploads and local media storage."""

import pytest

from campus_market_api.app.core import storage
from tests.conftest import API

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestObjectNames:
    def test_layout(self):
        name = storage.build_object_name("listings", "user-1", "My Photo.JPG")
        bucket, user_id, filename = name.split("/")
        assert (bucket, user_id) == ("listings", "user-1")
        stamp, rest = filename.split("-", 1)
        assert stamp.isdigit()
        assert rest.endswith(".jpg")

    def test_names_are_unique(self):
        names = {storage.build_object_name("listings", "u", "a.png") for _ in range(20)}
        assert len(names) == 20

    @pytest.mark.parametrize("filename", ["notes.txt", "noextension", "script.png.exe"])
    def test_rejects_non_images(self, filename):
        with pytest.raises(ValueError):
            storage.build_object_name("listings", "u", filename)

    def test_public_url_uses_base(self, monkeypatch):
        monkeypatch.setattr(storage.settings, "public_base_url", "https://market.example.edu/")
        assert storage.public_url("listings/u/1.png") == "https://market.example.edu/media/listings/u/1.png"


class TestUploadEndpoint:
    def test_upload_and_serve(self, client, alice, tmp_path):
        response = client.post(
            f"{API}/uploads/listing-image",
            files={"file": ("desk.png", PNG_BYTES, "image/png")},
            headers=alice["headers"],
        )
        assert response.status_code == 201
        body = response.json()
        assert body["path"].startswith(f"listings/{alice['id']}/")
        assert body["url"] == f"/media/{body['path']}"
        assert (tmp_path / "media" / body["path"]).read_bytes() == PNG_BYTES

        served = client.get(body["url"])
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    def test_rejects_wrong_type(self, client, alice):
        response = client.post(
            f"{API}/uploads/listing-image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=alice["headers"],
        )
        assert response.status_code == 400

    def test_rejects_empty_file(self, client, alice):
        response = client.post(
            f"{API}/uploads/listing-image",
            files={"file": ("empty.png", b"", "image/png")},
            headers=alice["headers"],
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Uploaded file is empty"

    def test_requires_auth(self, client):
        response = client.post(
            f"{API}/uploads/listing-image", files={"file": ("a.png", PNG_BYTES, "image/png")}
        )
        assert response.status_code == 401
