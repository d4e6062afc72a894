import pytest

from conftest import register
from social_api.clients import minio_client
from social_api.config import settings
from social_api.errors import ValidationError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(client, headers, data=PNG, content_type="image/png", type="post"):
    files = {"image": ("photo.png", data, content_type)}
    form = {"type": type} if type is not None else {}
    return client.post("/upload/image", files=files, data=form, headers=headers)


def test_upload_image_stores_object(client, fake_s3):
    _, headers = register(client, "Anna")
    resp = _upload(client, headers)
    assert resp.status_code == 200, resp.text

    body = resp.json()
    assert body["type"] == "post"
    assert body["storageId"].startswith("post/")
    assert body["storageId"].endswith(".png")
    assert body["url"].startswith("http://minio/")
    assert fake_s3.objects[body["storageId"]] == (PNG, "image/png")


def test_upload_requires_auth(client, fake_s3):
    assert _upload(client, {}).status_code == 401


def test_upload_rejects_non_image(client, fake_s3):
    _, headers = register(client, "Anna")
    resp = _upload(client, headers, data=b"hello", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "File must be an image"


def test_upload_rejects_bad_type(client, fake_s3):
    _, headers = register(client, "Anna")
    assert _upload(client, headers, type="banner").status_code == 400
    assert _upload(client, headers, type=None).status_code == 400


def test_upload_requires_file(client, fake_s3):
    _, headers = register(client, "Anna")
    resp = client.post("/upload/image", data={"type": "post"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Image file is required"


def test_upload_rejects_oversize_file(client, fake_s3, monkeypatch):
    _, headers = register(client, "Anna")
    monkeypatch.setattr(settings, "upload_max_bytes", 16)
    resp = _upload(client, headers)
    assert resp.status_code == 400
    assert fake_s3.objects == {}


def test_save_resolves_existing_object(client, fake_s3):
    _, headers = register(client, "Anna")
    storage_id = _upload(client, headers, type="profile").json()["storageId"]

    resp = client.post(
        "/upload/save", json={"storageId": storage_id, "type": "profile"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["storageId"] == storage_id
    assert storage_id in resp.json()["url"]

    missing = client.post(
        "/upload/save", json={"storageId": "profile/nope.png", "type": "profile"}, headers=headers
    )
    assert missing.status_code == 400
    assert missing.json()["detail"] == "File not found"


def test_resolve_storage_id_missing_object(fake_s3):
    with pytest.raises(ValidationError):
        minio_client.resolve_storage_id("post/missing.png")


def test_presigned_url_skips_empty_key(fake_s3):
    assert minio_client.get_presigned_url("") is None
    assert minio_client.get_presigned_url("post/a.png", expires_in=60).endswith("expires=60")


def test_get_s3_before_init(monkeypatch):
    monkeypatch.setattr(minio_client, "_s3", None)
    with pytest.raises(RuntimeError):
        minio_client.get_s3()
