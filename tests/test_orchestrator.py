"""Tests for batch orchestration."""
from pathlib import Path

import httpx
import pytest

from chunked_uploader.errors import InvalidArgumentError, ProviderContractError
from chunked_uploader.models import (
    MB,
    FileResult,
    MediaKind,
    OverallProgress,
    UploadConfig,
    UploadStatus,
    UploadType,
)
from chunked_uploader.orchestrator import UploadOrchestrator, overall_progress
from chunked_uploader.protocols import TransportResponse
from conftest import FakeTransport, make_file


def _orchestrator(transport, reader, provider, probe, generator, config=None, **kwargs):
    return UploadOrchestrator(
        provider.get_upload_url,
        provider.mark_upload_complete,
        config=config or UploadConfig(),
        transport=transport,
        reader=reader,
        dimension_probe=probe,
        thumbnail_generator=generator,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_empty_batch(transport, reader, provider, probe, generator):
    overall = []
    async with _orchestrator(
        transport, reader, provider, probe, generator, on_overall_progress=overall.append
    ) as orchestrator:
        assert await orchestrator.upload_files([]) == []
    assert provider.requests == []
    assert overall == []


@pytest.mark.asyncio
async def test_mixed_batch_keeps_input_order(transport, reader, provider, probe, generator):
    files = [
        make_file(index=0, size=3 * MB),
        make_file(index=1, size=12 * MB, kind=MediaKind.VIDEO, thumbnail_path=Path("/media/t1.jpg")),
        make_file(index=2, size=5 * MB),
        make_file(index=3, size=100),
    ]
    overall = []

    async with _orchestrator(
        transport, reader, provider, probe, generator, on_overall_progress=overall.append
    ) as orchestrator:
        results = await orchestrator.upload_files(files)

    assert [r.file_index for r in results] == [0, 1, 2, 3]
    assert all(r.success for r in results)
    assert results[1].media_kind == MediaKind.VIDEO
    assert results[1].thumbnail_key is not None

    chunked = provider.requests_of(UploadType.CHUNKED)
    simple = provider.requests_of(UploadType.SIMPLE)
    assert sorted(r.total_parts for r in chunked) == [1, 3]
    assert len(simple) == 2
    assert len(provider.completions) == 2

    assert overall == [OverallProgress(percent=100, uploaded_bytes=20 * MB + 100, total_bytes=20 * MB + 100)]


@pytest.mark.asyncio
async def test_file_below_threshold_uses_simple_upload(transport, reader, provider, probe, generator):
    async with _orchestrator(transport, reader, provider, probe, generator) as orchestrator:
        [result] = await orchestrator.upload_files([make_file(size=3 * MB)])

    assert result.success
    assert [r.upload_type for r in provider.requests] == [UploadType.SIMPLE]
    assert provider.completions == []


@pytest.mark.asyncio
async def test_failures_are_isolated(reader, provider, probe, generator):
    transport = FakeTransport()
    # second request made by the batch is file 1's session
    transport.responses["https://s3.test/2/part/1"] = TransportResponse(500, httpx.Headers())
    config = UploadConfig(concurrent_file_upload_limit=1)
    files = [make_file(index=i, size=6 * MB) for i in range(3)]
    overall = []

    async with _orchestrator(
        transport, reader, provider, probe, generator, config=config,
        on_overall_progress=overall.append,
    ) as orchestrator:
        results = await orchestrator.upload_files(files)

    assert [r.status for r in results] == [
        UploadStatus.COMPLETED,
        UploadStatus.FAILED,
        UploadStatus.COMPLETED,
    ]
    assert results[1].error == "Received 500 status"
    assert len(provider.completions) == 2
    assert overall[0].uploaded_bytes == 12 * MB
    assert overall[0].percent == 67


@pytest.mark.asyncio
async def test_file_concurrency_is_bounded(reader, provider, probe, generator):
    transport = FakeTransport(delay=0.01)
    config = UploadConfig(concurrent_file_upload_limit=2)
    files = [make_file(index=i, size=100) for i in range(6)]

    async with _orchestrator(transport, reader, provider, probe, generator, config=config) as orchestrator:
        results = await orchestrator.upload_files(files)

    assert all(r.success for r in results)
    assert transport.max_in_flight == 2


@pytest.mark.asyncio
async def test_size_limit_fails_only_that_file(transport, reader, provider, probe, generator):
    config = UploadConfig(max_file_size_mb=10)
    files = [make_file(index=0, size=11 * MB), make_file(index=1, size=MB)]

    async with _orchestrator(transport, reader, provider, probe, generator, config=config) as orchestrator:
        results = await orchestrator.upload_files(files)

    assert results[0].error == "File size is greater than 10 MB"
    assert results[1].success
    assert provider.requests_of(UploadType.CHUNKED) == []


@pytest.mark.asyncio
async def test_contract_violation_escapes_the_batch(transport, reader, provider, probe, generator):
    async def get_upload_url(request):
        return {"unexpected": True}

    async with UploadOrchestrator(
        get_upload_url,
        provider.mark_upload_complete,
        transport=transport,
        reader=reader,
        dimension_probe=probe,
        thumbnail_generator=generator,
    ) as orchestrator:
        with pytest.raises(ProviderContractError):
            await orchestrator.upload_files([make_file(size=100)])


@pytest.mark.asyncio
async def test_duplicate_indexes_rejected(transport, reader, provider, probe, generator):
    async with _orchestrator(transport, reader, provider, probe, generator) as orchestrator:
        with pytest.raises(InvalidArgumentError):
            await orchestrator.upload_files([make_file(index=1), make_file(index=1, name="other.jpg")])


@pytest.mark.asyncio
async def test_thumbnails_disabled(transport, reader, provider, probe, generator):
    config = UploadConfig(upload_thumbnails=False)
    file = make_file(size=100, kind=MediaKind.VIDEO, thumbnail_path=Path("/media/t.jpg"))

    async with _orchestrator(transport, reader, provider, probe, generator, config=config) as orchestrator:
        [result] = await orchestrator.upload_files([file])

    assert result.success
    assert result.thumbnail_key is None
    assert provider.requests_of(UploadType.THUMBNAIL) == []


@pytest.mark.asyncio
async def test_separate_thumbnail_url_provider(transport, reader, provider, probe, generator):
    thumbnail_requests = []

    async def get_thumbnail_url(request):
        thumbnail_requests.append(request)
        return {"url": "https://cdn.test/thumb", "key": "thumbs/x"}

    file = make_file(size=100, kind=MediaKind.VIDEO, thumbnail_path=Path("/media/t.jpg"))
    async with _orchestrator(
        transport, reader, provider, probe, generator, get_thumbnail_url=get_thumbnail_url
    ) as orchestrator:
        [result] = await orchestrator.upload_files([file])

    assert result.thumbnail_key == "thumbs/x"
    assert [r.upload_type for r in thumbnail_requests] == [UploadType.THUMBNAIL]
    assert provider.requests_of(UploadType.THUMBNAIL) == []


@pytest.mark.asyncio
async def test_async_progress_callbacks(transport, reader, provider, probe, generator):
    snapshots = []
    overall = []

    async def on_progress(snapshot):
        snapshots.append(snapshot)

    async def on_overall_progress(progress):
        overall.append(progress)

    async with _orchestrator(
        transport, reader, provider, probe, generator,
        config=UploadConfig(chunk_size=MB, chunk_threshold_bytes=MB),
        on_progress=on_progress,
        on_overall_progress=on_overall_progress,
    ) as orchestrator:
        await orchestrator.upload_files([make_file(size=4 * MB)])

    assert [s.uploaded_parts for s in snapshots[:-1]] == [1, 2, 3, 4]
    assert snapshots[-1].status == UploadStatus.COMPLETED
    assert len(overall) == 1


@pytest.mark.asyncio
async def test_upload_without_context_is_an_error(reader, provider, probe, generator):
    orchestrator = UploadOrchestrator(
        provider.get_upload_url,
        provider.mark_upload_complete,
        reader=reader,
        dimension_probe=probe,
        thumbnail_generator=generator,
    )
    with pytest.raises(RuntimeError):
        await orchestrator.upload_files([make_file()])


def test_overall_progress_rounds_up():
    files = [make_file(index=0, size=1), make_file(index=1, size=2)]
    results = [
        FileResult.ok(files[0], "a"),
        FileResult.fail(files[1], "boom"),
    ]
    assert overall_progress(files, results) == OverallProgress(percent=34, uploaded_bytes=1, total_bytes=3)


def test_overall_progress_of_empty_files():
    files = [make_file(index=0, size=0)]
    assert overall_progress(files, [FileResult.ok(files[0], "a")]).percent == 0
