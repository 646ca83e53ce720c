import pytest

from app.isoaudit.storage import LocalStorage, S3Storage, StorageError, storage_from_config


def test_local_storage_roundtrip(tmp_path):
    storage = LocalStorage(root=tmp_path)
    storage.put_bytes("uploads/iso9001/user_1/a.xlsx", b"data")
    assert storage.exists("uploads/iso9001/user_1/a.xlsx")
    with storage.open("uploads/iso9001/user_1/a.xlsx") as f:
        assert f.read() == b"data"

    storage.delete("uploads/iso9001/user_1/a.xlsx")
    assert not storage.exists("uploads/iso9001/user_1/a.xlsx")
    # Deleting again is fine
    storage.delete("uploads/iso9001/user_1/a.xlsx")


def test_local_storage_rejects_escaping_keys(tmp_path):
    storage = LocalStorage(root=tmp_path / "storage")
    with pytest.raises(StorageError):
        storage.put_bytes("../outside.txt", b"x")


def test_storage_from_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    local = storage_from_config({"STORAGE_BACKEND": "local"})
    assert isinstance(local, LocalStorage)
    assert local.root.resolve() == (tmp_path / "storage").resolve()

    s3 = storage_from_config(
        {
            "STORAGE_BACKEND": "S3",
            "S3_ENDPOINT": "nyc3.digitaloceanspaces.com",
            "S3_BUCKET": "audits",
            "S3_ACCESS_KEY_ID": "key",
            "S3_SECRET_ACCESS_KEY": "secret",
        }
    )
    assert isinstance(s3, S3Storage)
    assert s3.bucket == "audits"
    assert s3.region == "nyc3"
