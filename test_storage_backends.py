import io
import os
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from conftest import FixedClock
from feeling_vibe.config import LocalStorageConfig, S3Config
from feeling_vibe.errors import InvalidRequestError
from feeling_vibe.repositories.local_impl.file_storage_local_impl import FileStorageLocalImpl
from feeling_vibe.repositories.s3_impl.file_storage_s3_impl import FileStorageS3Impl

BUCKET = "vibe-test-bucket"


@pytest.fixture
def local_storage(tmp_path):
    return FileStorageLocalImpl(LocalStorageConfig(uploads_dir=str(tmp_path / "uploads")))


@pytest.fixture
def s3_storage(aws_credentials):
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=BUCKET)
        yield FileStorageS3Impl(S3Config(access_key_id="testing", secret_access_key="testing", bucket=BUCKET))


# Local backend

def test_local_creates_uploads_dir(tmp_path):
    uploads = tmp_path / "nested" / "uploads"
    FileStorageLocalImpl(LocalStorageConfig(uploads_dir=str(uploads)))
    assert uploads.is_dir()


def test_local_upload_accepts_bytes_streams_and_paths(local_storage, tmp_path):
    source = tmp_path / "source.mp4"
    source.write_bytes(b"video-bytes")

    from_bytes = local_storage.upload_file(b"abc", "a.png", "image/png")
    from_stream = local_storage.upload_file(io.BytesIO(b"abcd"), "b.jpg")
    from_path = local_storage.upload_file(str(source), "c.mp4")

    assert from_bytes.url == "/uploads/a.png"
    assert from_bytes.size == 3
    assert from_bytes.content_type == "image/png"
    assert from_stream.size == 4
    assert from_stream.content_type == "image/jpeg"
    assert from_path.size == len(b"video-bytes")
    assert os.path.isfile(from_path.path)


def test_local_rejects_path_like_names(local_storage):
    with pytest.raises(InvalidRequestError):
        local_storage.upload_file(b"x", "../escape.png")
    assert local_storage.get_file_info("../escape.png") is None
    assert local_storage.delete_file("sub/dir.png") is False


def test_local_info_list_and_delete(local_storage):
    local_storage.upload_file(b"12345", "photo.gif")
    open(os.path.join(local_storage.uploads_dir, ".hidden"), "w").close()

    info = local_storage.get_file_info("photo.gif")
    assert info.size == 5
    assert info.url == "/uploads/photo.gif"
    assert info.created_at.tzinfo is not None
    assert [f.filename for f in local_storage.list_files()] == ["photo.gif"]

    assert local_storage.delete_file("photo.gif") is True
    assert local_storage.delete_file("photo.gif") is False
    assert local_storage.get_file_info("photo.gif") is None


def test_local_presigned_url_is_static_url(local_storage):
    local_storage.upload_file(b"x", "clip.webm")

    assert local_storage.generate_presigned_url("clip.webm") == "/uploads/clip.webm"
    assert local_storage.generate_presigned_url("missing.webm") is None


def test_local_stats(local_storage):
    assert local_storage.get_storage_stats().total_files == 0

    local_storage.upload_file(b"aa", "one.png")
    local_storage.upload_file(b"aaaa", "two.png")

    stats = local_storage.get_storage_stats()
    assert stats.total_files == 2
    assert stats.total_size == 6
    assert stats.average_file_size == 3
    assert stats.oldest_file <= stats.newest_file


def test_local_cleanup_uses_clock(tmp_path):
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    storage = FileStorageLocalImpl(LocalStorageConfig(uploads_dir=str(tmp_path / "uploads")), clock=FixedClock(now))
    storage.upload_file(b"old", "old.png")
    storage.upload_file(b"new", "new.png")

    old_time = (now - timedelta(days=45)).timestamp()
    new_time = (now - timedelta(days=2)).timestamp()
    os.utime(os.path.join(storage.uploads_dir, "old.png"), (old_time, old_time))
    os.utime(os.path.join(storage.uploads_dir, "new.png"), (new_time, new_time))

    assert storage.cleanup_old_files(30) == 1
    assert [f.filename for f in storage.list_files()] == ["new.png"]


def test_local_cleanup_zero_days_keeps_files_created_exactly_now(tmp_path):
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    storage = FileStorageLocalImpl(LocalStorageConfig(uploads_dir=str(tmp_path / "uploads")), clock=FixedClock(now))
    storage.upload_file(b"a", "just-before.png")
    storage.upload_file(b"b", "exactly-now.png")

    now_ns = int(now.timestamp()) * 1_000_000_000
    before_ns = now_ns - 1_000
    os.utime(os.path.join(storage.uploads_dir, "just-before.png"), ns=(before_ns, before_ns))
    os.utime(os.path.join(storage.uploads_dir, "exactly-now.png"), ns=(now_ns, now_ns))

    assert storage.get_file_info("just-before.png").created_at == now - timedelta(microseconds=1)
    assert storage.get_file_info("exactly-now.png").created_at == now

    assert storage.cleanup_old_files(0) == 1
    assert [f.filename for f in storage.list_files()] == ["exactly-now.png"]


def test_local_health_leaves_no_probe_file(local_storage):
    health = local_storage.get_health()

    assert health["status"] == "healthy"
    assert health["writable"] is True
    assert not os.path.exists(os.path.join(local_storage.uploads_dir, ".write-test"))


# S3 backend

def test_s3_upload_and_info(s3_storage):
    blob = s3_storage.upload_file(b"image-bytes", "photo.jpg", "image/jpeg")

    assert blob.size == len(b"image-bytes")
    assert blob.url == f"https://{BUCKET}.s3.us-east-1.amazonaws.com/photo.jpg"
    assert blob.etag

    info = s3_storage.get_file_info("photo.jpg")
    assert info.size == len(b"image-bytes")
    assert info.content_type == "image/jpeg"
    assert info.created_at.tzinfo is not None
    assert s3_storage.get_file_info("missing.jpg") is None


def test_s3_upload_from_stream(s3_storage):
    blob = s3_storage.upload_file(io.BytesIO(b"stream"), "s.png")
    assert blob.size == 6


def test_s3_list_and_delete(s3_storage):
    s3_storage.upload_file(b"a", "a.png")
    s3_storage.upload_file(b"bb", "b.png")

    assert sorted(f.filename for f in s3_storage.list_files()) == ["a.png", "b.png"]
    assert s3_storage.get_storage_stats().total_size == 3

    assert s3_storage.delete_file("a.png") is True
    assert s3_storage.delete_file("a.png") is False
    assert [f.filename for f in s3_storage.list_files()] == ["b.png"]


def test_s3_presigned_url(s3_storage):
    s3_storage.upload_file(b"a", "share.png")

    url = s3_storage.generate_presigned_url("share.png", expires_in=60)

    assert "share.png" in url
    assert BUCKET in url


def test_s3_cleanup_with_future_clock(s3_storage):
    s3_storage.upload_file(b"a", "a.png")
    s3_storage.upload_file(b"b", "b.png")
    s3_storage.clock = lambda: datetime.now(timezone.utc) + timedelta(days=60)

    assert s3_storage.cleanup_old_files(30) == 2
    assert s3_storage.list_files() == []


def test_s3_health(s3_storage):
    health = s3_storage.get_health()

    assert health["status"] == "healthy"
    assert health["bucket"] == BUCKET


def test_s3_health_reports_missing_bucket(aws_credentials):
    with mock_aws():
        storage = FileStorageS3Impl(S3Config(access_key_id="testing", secret_access_key="testing", bucket="no-such-bucket"))
        assert storage.get_health()["status"] == "error"


def test_s3_public_base_url(s3_storage):
    s3_storage.config.public_base_url = "https://cdn.example.com/media/"
    assert s3_storage.upload_file(b"a", "x.png").url == "https://cdn.example.com/media/x.png"
