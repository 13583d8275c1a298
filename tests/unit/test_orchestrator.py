"""Unit tests for UploadOrchestrator using in-memory fakes."""

import asyncio

import pytest

from catalog_media.core.exceptions import (
    GrantRequestError,
    PromotionError,
    TransferError,
)
from catalog_media.core.models import SourceFile
from catalog_media.core.transcoder import ImageTranscoder
from catalog_media.testing.fakes import (
    FailingTranscoder,
    FakeFilesApi,
    FakeLogger,
    FakeStorage,
    create_source_file,
    setup_test_upload_environment,
)
from catalog_media.upload.orchestrator import UploadOrchestrator


def make_orchestrator(transcoder=None, **kwargs):
    files_api, storage = setup_test_upload_environment()
    logger = FakeLogger()
    orchestrator = UploadOrchestrator(
        files_api=files_api,
        storage=storage,
        transcoder=transcoder,
        logger=logger,
        **kwargs,
    )
    return orchestrator, files_api, storage, logger


def text_file(name="notes.txt"):
    return SourceFile(name=name, content_type="text/plain", data=b"hello")


class TestPrepareFile:
    """Tests for UploadOrchestrator.prepare_file."""

    def test_image_is_transcoded(self):
        orchestrator, _, _, _ = make_orchestrator(ImageTranscoder())

        prepared = orchestrator.prepare_file(create_source_file("photo.jpg", 80, 60))

        assert prepared.file.name == "photo.webp"
        assert prepared.processed is not None
        assert prepared.processed.width == 80

    def test_non_image_passes_through(self):
        orchestrator, _, _, _ = make_orchestrator(ImageTranscoder())
        file = text_file()

        prepared = orchestrator.prepare_file(file)

        assert prepared.file is file
        assert prepared.processed is None

    def test_without_transcoder_passes_through(self):
        orchestrator, _, _, _ = make_orchestrator()
        file = create_source_file("photo.jpg")

        assert orchestrator.prepare_file(file).file is file
        assert not orchestrator.processes_images

    def test_transcode_failure_falls_back_to_original(self):
        transcoder = FailingTranscoder()
        orchestrator, _, _, logger = make_orchestrator(transcoder)
        file = create_source_file("photo.jpg")

        prepared = orchestrator.prepare_file(file)

        assert prepared.file is file
        assert transcoder.calls == 1
        warnings = logger.get_logs("WARNING")
        assert warnings[0]["message"] == "Image processing failed, using original file"
        assert warnings[0]["file_name"] == "photo.jpg"


class TestUploadFile:
    """Tests for single-file uploads."""

    def test_upload_processed_image(self):
        orchestrator, files_api, storage, _ = make_orchestrator(ImageTranscoder())

        grant = asyncio.run(orchestrator.upload_file(create_source_file("photo.jpg", 80, 60)))

        assert grant.key == "uploads/1-photo.webp"
        assert grant.public_url == "https://cdn.example.com/uploads/1-photo.webp"
        assert len(files_api.calls_to("get_upload_url")) == 1
        assert storage.puts[0]["content_type"] == "image/webp"
        assert files_api.bucket.get_object(grant.key).content_type == "image/webp"

    def test_upload_to_folder(self):
        orchestrator, files_api, _, _ = make_orchestrator()

        grant = asyncio.run(orchestrator.upload_file(text_file(), folder="docs"))

        assert grant.key == "docs/1-notes.txt"
        assert files_api.calls_to("get_upload_url")[0]["folder"] == "docs"

    def test_process_flag_skips_transcoding(self):
        orchestrator, _, _, _ = make_orchestrator(ImageTranscoder())

        grant = asyncio.run(
            orchestrator.upload_file(create_source_file("photo.jpg"), process=False)
        )

        assert grant.key.endswith("photo.jpg")

    def test_fallback_uploads_original_bytes(self):
        orchestrator, files_api, _, _ = make_orchestrator(FailingTranscoder())
        file = create_source_file("photo.jpg")

        grant = asyncio.run(orchestrator.upload_file(file))

        stored = files_api.bucket.get_object(grant.key)
        assert stored.body == file.data
        assert stored.content_type == "image/jpeg"

    def test_grant_refused(self):
        orchestrator, files_api, storage, _ = make_orchestrator()
        files_api.set_failure_mode("get_upload_url", "Forbidden", status=403)

        with pytest.raises(GrantRequestError) as exc_info:
            asyncio.run(orchestrator.upload_file(text_file()))

        assert exc_info.value.status == 403
        assert storage.puts == []

    def test_transfer_rejected(self):
        orchestrator, _, storage, _ = make_orchestrator()
        storage.fail_for("notes.txt")

        with pytest.raises(TransferError) as exc_info:
            asyncio.run(orchestrator.upload_file(text_file()))

        assert exc_info.value.status == 403


class TestUploadAndPromote:
    """Tests for upload followed by promotion."""

    def test_promotes_to_permanent_folder(self):
        orchestrator, files_api, _, _ = make_orchestrator()

        ref = asyncio.run(orchestrator.upload_and_promote(text_file(), "products"))

        assert ref.key == "products/1-notes.txt"
        assert ref.public_url == "https://cdn.example.com/products/1-notes.txt"
        assert files_api.bucket.list_keys() == ["products/1-notes.txt"]

    def test_promotion_failure_reports_temporary_key(self):
        orchestrator, files_api, _, _ = make_orchestrator()
        files_api.set_failure_mode("move_to_permanent")

        with pytest.raises(PromotionError) as exc_info:
            asyncio.run(orchestrator.upload_and_promote(text_file(), "products"))

        assert exc_info.value.temporary_key == "uploads/1-notes.txt"
        assert exc_info.value.status == 500
        assert files_api.bucket.list_keys() == ["uploads/1-notes.txt"]

    def test_no_promotion_when_transfer_fails(self):
        orchestrator, files_api, storage, _ = make_orchestrator()
        storage.fail_for("notes.txt")

        with pytest.raises(TransferError):
            asyncio.run(orchestrator.upload_and_promote(text_file()))

        assert files_api.calls_to("move_to_permanent") == []


class TestUploadMultipleFiles:
    """Tests for batched uploads."""

    def test_one_grant_request_for_all_files(self):
        orchestrator, files_api, storage, _ = make_orchestrator()
        files = [text_file(f"{name}.txt") for name in "abc"]

        grants = asyncio.run(orchestrator.upload_multiple_files(files, "uploads"))

        assert len(files_api.calls_to("get_upload_urls")) == 1
        assert files_api.calls_to("get_upload_url") == []
        assert len(storage.puts) == 3
        assert [g.key for g in grants] == ["uploads/1-a.txt", "uploads/2-b.txt", "uploads/3-c.txt"]

    def test_images_processed_by_default(self):
        orchestrator, _, _, _ = make_orchestrator(ImageTranscoder())
        files = [create_source_file("a.jpg", 40, 40), create_source_file("b.png", 40, 40, "PNG")]

        grants = asyncio.run(orchestrator.upload_multiple_files(files))

        assert [g.key for g in grants] == ["uploads/1-a.webp", "uploads/2-b.webp"]

    def test_empty_input_makes_no_calls(self):
        orchestrator, files_api, _, _ = make_orchestrator()

        assert asyncio.run(orchestrator.upload_multiple_files([])) == []
        assert files_api.calls == []

    def test_failures_aggregated_after_all_transfers(self):
        orchestrator, files_api, storage, _ = make_orchestrator()
        storage.fail_for("b.txt", "c.txt")
        files = [text_file(f"{name}.txt") for name in "abc"]

        with pytest.raises(TransferError) as exc_info:
            asyncio.run(orchestrator.upload_multiple_files(files))

        error = exc_info.value
        assert error.failed_names == ["b.txt", "c.txt"]
        assert error.failed_indexes == [1, 2]
        assert "b.txt" in str(error) and "c.txt" in str(error)
        assert len(storage.puts) == 3
        assert files_api.bucket.list_keys() == ["uploads/1-a.txt"]

    def test_transfers_run_concurrently(self):
        orchestrator, _, storage, _ = make_orchestrator()
        storage.set_delay(0.05)
        files = [text_file(f"{i}.txt") for i in range(4)]

        asyncio.run(orchestrator.upload_multiple_files(files))

        assert storage.max_in_flight == 4

    def test_grant_request_refused(self):
        orchestrator, files_api, storage, _ = make_orchestrator()
        files_api.set_failure_mode("get_upload_urls")

        with pytest.raises(GrantRequestError):
            asyncio.run(orchestrator.upload_multiple_files([text_file()]))

        assert storage.puts == []

    def test_grant_count_mismatch(self):
        class ShortFilesApi(FakeFilesApi):
            async def get_upload_urls(self, files, folder=None):
                grants = await super().get_upload_urls(files, folder)
                return grants[:-1]

        bucket_api = ShortFilesApi()
        storage = FakeStorage(bucket_api.bucket)
        orchestrator = UploadOrchestrator(bucket_api, storage, logger=FakeLogger())

        with pytest.raises(GrantRequestError):
            asyncio.run(orchestrator.upload_multiple_files([text_file("a.txt"), text_file("b.txt")]))

        assert storage.puts == []


class TestUploadMultipleAndPromote:
    """Tests for batched upload followed by batched promotion."""

    def test_uploads_to_staging_then_promotes_once(self):
        orchestrator, files_api, _, _ = make_orchestrator(staging_folder="staging")
        files = [text_file("a.txt"), text_file("b.txt")]

        refs = asyncio.run(orchestrator.upload_multiple_and_move_to_permanent(files, "products"))

        assert files_api.calls_to("get_upload_urls")[0]["folder"] == "staging"
        moves = files_api.calls_to("move_multiple_to_permanent")
        assert len(moves) == 1
        assert moves[0]["file_keys"] == ["staging/1-a.txt", "staging/2-b.txt"]
        assert [r.key for r in refs] == ["products/1-a.txt", "products/2-b.txt"]

    def test_promotion_failure_lists_all_temporary_keys(self):
        orchestrator, files_api, _, _ = make_orchestrator()
        files_api.set_failure_mode("move_multiple_to_permanent")

        with pytest.raises(PromotionError) as exc_info:
            asyncio.run(
                orchestrator.upload_multiple_and_move_to_permanent(
                    [text_file("a.txt"), text_file("b.txt")]
                )
            )

        assert exc_info.value.temporary_keys == ["uploads/1-a.txt", "uploads/2-b.txt"]

    def test_empty_input(self):
        orchestrator, files_api, _, _ = make_orchestrator()

        assert asyncio.run(orchestrator.upload_multiple_and_move_to_permanent([])) == []
        assert files_api.calls == []


class TestPassThroughOperations:
    """Tests for delete_file and get_file_info."""

    def test_delete_file(self):
        orchestrator, files_api, _, _ = make_orchestrator()
        files_api.bucket.add_object("products/a.jpg", b"x")

        message = asyncio.run(orchestrator.delete_file("products/a.jpg"))

        assert message == "File deleted successfully"
        assert files_api.bucket.list_keys() == []

    def test_get_file_info(self):
        orchestrator, _, _, _ = make_orchestrator()

        info = asyncio.run(orchestrator.get_file_info("products/a.jpg"))

        assert info.public_url == "https://cdn.example.com/products/a.jpg"


class TestLifecycle:
    """Tests for closing the orchestrator's transports."""

    def test_async_context_closes_files_api_and_storage(self):
        orchestrator, files_api, storage, _ = make_orchestrator()

        async def scenario():
            async with orchestrator as active:
                await active.upload_file(text_file())

        asyncio.run(scenario())

        assert files_api.closed
        assert storage.closed

    def test_storage_closed_when_files_api_close_fails(self):
        orchestrator, files_api, storage, _ = make_orchestrator()

        async def broken_close():
            raise RuntimeError("socket already gone")

        files_api.close = broken_close

        with pytest.raises(RuntimeError):
            asyncio.run(orchestrator.close())

        assert storage.closed
