"""
Unit tests for the archival orchestrator.

Tests cover:
1. Import jobs are left untouched
2. Content store address selection per mode and type
3. Routing per storage policy (off, external-only, external-and-store)
4. The source file is removed on every non-import path, success or failure
5. Cleanup errors never mask the primary error
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from app.archival.services.content_store import ContentStorePublisher, FileContentStore
from app.archival.services.local_sink import LocalDirectorySink
from app.archival.services.object_storage import ObjectStorageGateway
from app.archival.services.orchestrator import ArchivalOrchestrator, SourceFileLease
from tests.app.archival.fakes import FakeMinio, make_s3_error, make_job, make_source
from vault_core.config import ArchivalConfig
from vault_core.domain.exceptions import (
    ArchivalError,
    CleanupFailed,
    InvalidDestination,
    PreconditionFailed,
    PublishFailed,
    TransferFailed,
)
from vault_core.domain.models import ArchivalState, BackupMode, BackupType, StoragePolicy


class TestImportJobs:
    """Import backups are never archived."""

    def test_import_returns_none_and_keeps_source(self, build, source):
        orchestrator = build()
        job = make_job(source, mode=BackupMode.IMPORT)

        assert orchestrator.archive(job) is None
        assert source.exists()
        assert source.read_bytes() == b"backup-bytes"

    def test_import_with_empty_file_name_is_not_checked(self, build, source):
        orchestrator = build()
        job = make_job(source, mode=BackupMode.IMPORT, file_name="")

        assert orchestrator.archive(job) is None
        assert source.exists()

    def test_import_history_skips_cleanup(self, build, source):
        result = build().run(make_job(source, mode=BackupMode.IMPORT))

        assert result.history == [ArchivalState.START, ArchivalState.DONE]


class TestAddressSelection:
    """Tests for ArchivalOrchestrator.address_for()."""

    def test_course_backup(self, source):
        address = ArchivalOrchestrator.address_for(make_job(source, type=BackupType.COURSE))

        assert (address.context_id, address.component, address.area, address.item_id) == (
            "course:7", "backup", "course", 0,
        )

    def test_section_backup_uses_container_as_item(self, source):
        job = make_job(source, type=BackupType.SECTION, container_id=42)

        address = ArchivalOrchestrator.address_for(job)

        assert address.context_id == "course:7"
        assert address.area == "section"
        assert address.item_id == 42

    def test_activity_backup_uses_module_context(self, source):
        job = make_job(source, type=BackupType.ACTIVITY, container_id=99)

        address = ArchivalOrchestrator.address_for(job)

        assert address.context_id == "module:99"
        assert address.area == "activity"

    def test_hub_backup_goes_to_user_area(self, source):
        job = make_job(source, mode=BackupMode.HUB, type=BackupType.SECTION, container_id=42)

        address = ArchivalOrchestrator.address_for(job)

        assert (address.context_id, address.component, address.area, address.item_id) == (
            "user:2", "user", "tohub", 0,
        )

    def test_general_without_users_goes_to_user_backup_area(self, source):
        job = make_job(source, has_user_data=False)

        address = ArchivalOrchestrator.address_for(job)

        assert (address.context_id, address.component, address.area) == ("user:2", "user", "backup")

    def test_general_anonymised_goes_to_user_backup_area(self, source):
        job = make_job(source, has_user_data=True, is_anonymised=True)

        assert ArchivalOrchestrator.address_for(job).area == "backup"

    def test_general_with_users_stays_in_course(self, source):
        job = make_job(source, has_user_data=True, is_anonymised=False)

        assert ArchivalOrchestrator.address_for(job).area == "course"

    def test_automated_overrides_area_only(self, source):
        job = make_job(source, mode=BackupMode.AUTOMATED, type=BackupType.SECTION, container_id=3)

        address = ArchivalOrchestrator.address_for(job)

        assert (address.context_id, address.component, address.area, address.item_id) == (
            "course:7", "backup", "automated", 3,
        )


class TestContentStoreRouting:
    """Jobs without an external destination go to the content store."""

    def test_general_job_is_published(self, build, source, store):
        handle = build().archive(make_job(source))

        assert handle is not None
        assert store.exists(handle.address)
        assert not source.exists()

    def test_automated_with_policy_off_is_published(self, build, source, store):
        orchestrator = build(policy=StoragePolicy.OFF, destination="s3://bucket/backups")

        handle = orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert handle.address.area == "automated"
        assert orchestrator.sinks["object_store"].client.objects == {}

    def test_external_destination_ignored_for_general_jobs(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket")

        handle = orchestrator.archive(make_job(source))

        assert handle is not None
        assert orchestrator.sinks["object_store"].client.objects == {}

    def test_republishing_replaces_previous_backup(self, build, tmp_path, store):
        orchestrator = build()
        orchestrator.archive(make_job(make_source(tmp_path / "a", content=b"old")))

        handle = orchestrator.archive(make_job(make_source(tmp_path / "b", content=b"new")))

        with store.open(handle) as fh:
            assert fh.read() == b"new"
        assert len(list((store.base_path / "records").rglob("*.json"))) == 1


class TestObjectStoreRouting:
    """Automated jobs with an s3:// destination."""

    def test_external_and_store_uploads_and_publishes(self, build, source, store):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination="s3://bucket/backups")
        job = make_job(source, mode=BackupMode.AUTOMATED)

        handle = orchestrator.archive(job)

        client = orchestrator.sinks["object_store"].client
        assert handle is not None
        assert store.exists(handle.address)
        assert client.objects[("bucket", f"backups/{job.file_name}")]["data"] == b"backup-bytes"
        assert not source.exists()

    def test_upload_carries_metadata(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket")
        job = make_job(source, mode=BackupMode.AUTOMATED)

        orchestrator.archive(job)

        metadata = orchestrator.sinks["object_store"].client.objects[("bucket", job.file_name)]["metadata"]
        assert metadata["backup-course-id"] == "7"
        assert metadata["backup-id"] == "job-123"
        assert metadata["backup-mode"] == "automated"
        assert metadata["backup-type"] == "course"
        assert len(metadata["backup-site"]) == 32

    def test_external_only_skips_content_store(self, build, source, store):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket/backups")

        handle = orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert handle is None
        assert not (store.base_path / "records").exists()
        assert not source.exists()

    def test_missing_bucket_is_invalid_destination(self, build, source, store):
        orchestrator = build(
            policy=StoragePolicy.EXTERNAL_AND_STORE,
            destination="s3://bucket/backups",
            buckets=(),
        )

        with pytest.raises(InvalidDestination):
            orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()
        assert not (store.base_path / "records").exists()

    def test_non_200_upload_is_transfer_failed(self, build, source, store):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination="s3://bucket")
        orchestrator.sinks["object_store"].client.fail_with = make_s3_error(500)

        with pytest.raises(TransferFailed):
            orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()
        assert not (store.base_path / "records").exists()

    def test_transfer_failure_under_external_only_still_removes_source(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket")
        orchestrator.sinks["object_store"].client.fail_with = ConnectionError("reset")

        with pytest.raises(TransferFailed):
            orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()


class TestLocalDirectoryRouting:
    """Automated jobs with a local directory destination."""

    def test_external_only_copies_to_directory(self, build, source, tmp_path):
        target = tmp_path / "external"
        target.mkdir()
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination=str(target))
        job = make_job(source, mode=BackupMode.AUTOMATED)

        assert orchestrator.archive(job) is None
        assert (target / job.file_name).read_bytes() == b"backup-bytes"
        assert not source.exists()

    def test_external_and_store_copies_and_publishes(self, build, source, tmp_path, store):
        target = tmp_path / "external"
        target.mkdir()
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination=str(target))

        handle = orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert handle is not None
        assert (target / handle.address.file_name).exists()
        assert store.exists(handle.address)

    def test_missing_directory_is_invalid_destination(self, build, source, tmp_path):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination=str(tmp_path / "gone"))

        with pytest.raises(InvalidDestination):
            orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()

    def test_failed_copy_is_transfer_failed(self, build, source, tmp_path, store):
        target = tmp_path / "external"
        target.mkdir()
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination=str(target))

        with patch.object(orchestrator.sinks["local"], "copy", return_value=False):
            with pytest.raises(TransferFailed):
                orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()
        assert not (store.base_path / "records").exists()

    def test_missing_destination_config_is_invalid(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="")

        with pytest.raises(InvalidDestination):
            orchestrator.archive(make_job(source, mode=BackupMode.AUTOMATED))

        assert not source.exists()


class TestPreconditions:
    """Precondition failures still clean up the source."""

    def test_empty_file_name(self, build, source):
        with pytest.raises(PreconditionFailed):
            build().archive(make_job(source, file_name=""))

        assert not source.exists()

    def test_missing_source(self, build, tmp_path):
        with pytest.raises(PreconditionFailed):
            build().archive(make_job(tmp_path / "never-written.mbz"))


class TestCleanupGuarantee:
    """The source file lifetime ends with orchestration."""

    def test_publish_failure_removes_source(self, build, source):
        orchestrator = build()
        orchestrator.publisher = MagicMock()
        orchestrator.publisher.publish.side_effect = PublishFailed("store offline")

        with pytest.raises(PublishFailed):
            orchestrator.archive(make_job(source))

        assert not source.exists()

    def test_unexpected_error_is_wrapped_and_source_removed(self, build, source):
        orchestrator = build()
        orchestrator.publisher = MagicMock()
        orchestrator.publisher.publish.side_effect = RuntimeError("boom")

        with pytest.raises(ArchivalError) as exc_info:
            orchestrator.archive(make_job(source))

        assert exc_info.value.code == "INTERNAL_ERROR"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert not source.exists()

    def test_cleanup_error_does_not_mask_primary_error(self, build, source):
        orchestrator = build()
        orchestrator.publisher = MagicMock()
        orchestrator.publisher.publish.side_effect = PublishFailed("store offline")

        with patch.object(Path, "unlink", side_effect=PermissionError("locked")):
            with pytest.raises(PublishFailed) as exc_info:
                orchestrator.archive(make_job(source))

        assert isinstance(exc_info.value.cleanup_error, CleanupFailed)

    def test_cleanup_error_after_success_is_a_warning(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket")

        with patch.object(Path, "unlink", side_effect=PermissionError("locked")):
            result = orchestrator.run(make_job(source, mode=BackupMode.AUTOMATED))

        assert result.succeeded
        assert len(result.warnings) == 1
        assert "cleanup failed" in result.warnings[0]


class TestRun:
    """Tests for the non-raising run() entry point."""

    def test_success_history(self, build, source):
        result = build().run(make_job(source))

        assert result.succeeded
        assert result.handle is not None
        assert result.history == [
            ArchivalState.START,
            ArchivalState.RESOLVING,
            ArchivalState.DISPATCHING,
            ArchivalState.SUCCEEDED,
            ArchivalState.CLEANUP,
            ArchivalState.DONE,
        ]

    def test_failure_is_one_line(self, build, source):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_ONLY, destination="s3://bucket", buckets=())

        result = orchestrator.run(make_job(source, mode=BackupMode.AUTOMATED))

        assert not result.succeeded
        assert result.error_code == "INVALID_DESTINATION"
        assert "\n" not in result.error
        assert "bucket 'bucket' does not exist" in result.error
        assert result.history[-3:] == [ArchivalState.FAILED, ArchivalState.CLEANUP, ArchivalState.DONE]
        assert not source.exists()


class TestSourceFileLease:
    """Tests for the scoped source file owner."""

    def test_removes_file_on_exit(self, source):
        with SourceFileLease(source):
            assert source.exists()

        assert not source.exists()

    def test_removes_file_when_error_propagates(self, source):
        with pytest.raises(ValueError):
            with SourceFileLease(source):
                raise ValueError("mid-dispatch")

        assert not source.exists()

    def test_missing_file_is_fine(self, tmp_path):
        with SourceFileLease(tmp_path / "already-gone") as lease:
            pass

        assert lease.cleanup_error is None


class TestEndToEnd:
    """Automated backup to s3 with a copy kept in the content store."""

    def test_reachable_bucket(self, build, source, store):
        orchestrator = build(policy=StoragePolicy.EXTERNAL_AND_STORE, destination="s3://bucket/backups")
        job = make_job(source, mode=BackupMode.AUTOMATED)

        handle = orchestrator.archive(job)

        assert handle is not None
        assert ("bucket", f"backups/{job.file_name}") in orchestrator.sinks["object_store"].client.objects
        assert not source.exists()

    def test_missing_bucket(self, build, source, store):
        orchestrator = build(
            policy=StoragePolicy.EXTERNAL_AND_STORE,
            destination="s3://bucket/backups",
            buckets=("other",),
        )

        result = orchestrator.run(make_job(source, mode=BackupMode.AUTOMATED))

        assert result.error_code == "INVALID_DESTINATION"
        assert result.handle is None
        assert not source.exists()
        assert not (store.base_path / "records").exists()


# --- Fixtures ---


@pytest.fixture
def source(tmp_path):
    return make_source(tmp_path / "scratch" / "job-123")


@pytest.fixture
def store(tmp_path):
    return FileContentStore(base_path=tmp_path / "filestore")


@pytest.fixture
def build(store):
    """Factory building an orchestrator with an in-memory bucket client."""

    def _build(
        policy: StoragePolicy = StoragePolicy.OFF,
        destination: str = "",
        buckets: tuple[str, ...] = ("bucket",),
    ) -> ArchivalOrchestrator:
        config = ArchivalConfig(
            storage_policy=policy,
            external_destination=destination,
            site_identifier="test-site",
        )
        return ArchivalOrchestrator(
            config=config,
            publisher=ContentStorePublisher(store),
            gateway=ObjectStorageGateway(client=FakeMinio(buckets=buckets)),
            sink=LocalDirectorySink(file_permissions=config.file_permissions),
        )

    return _build
