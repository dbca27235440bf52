import pytest

from wilaiety.storage.local_provider import LocalStorageProvider
from wilaiety.storage.provider import StorageConflict


def test_local_round_trip(storage):
    key = storage.upload("facility-images", "abc/1.png", b"data", "image/png")
    assert key == "abc/1.png"
    assert storage.exists("facility-images", "abc/1.png")
    assert storage.read("facility-images", "abc/1.png") == b"data"
    storage.delete("facility-images", "abc/1.png")
    assert not storage.exists("facility-images", "abc/1.png")
    assert storage.read("facility-images", "abc/1.png") is None


def test_upload_without_upsert_conflicts(storage):
    storage.upload("avatars", "u/avatar.png", b"one", "image/png")
    storage.upload("avatars", "u/avatar.png", b"two", "image/png", upsert=True)
    assert storage.read("avatars", "u/avatar.png") == b"two"
    with pytest.raises(StorageConflict):
        storage.upload("avatars", "u/avatar.png", b"three", "image/png", upsert=False)


def test_keys_cannot_escape_base_dir(tmp_path):
    provider = LocalStorageProvider(str(tmp_path / "s"))
    path = provider._get_path("avatars", "../../etc/passwd")
    assert str(path.resolve()).startswith(str((tmp_path / "s").resolve()))


def test_public_url_points_at_object_route(storage):
    url = storage.public_url("facility-images", "abc/1.png")
    assert url.endswith("/storage/v1/object/public/facility-images/abc/1.png")


def test_object_route(client, storage):
    storage.upload("avatars", "x/avatar.png", b"img", "image/png")
    resp = client.get("/storage/v1/object/public/avatars/x/avatar.png")
    assert resp.status_code == 200
    assert resp.content == b"img"
    assert resp.headers["content-type"] == "image/png"
    assert client.get("/storage/v1/object/public/avatars/x/missing.png").status_code == 404
    assert client.get("/storage/v1/object/public/secrets/x.png").status_code == 404
