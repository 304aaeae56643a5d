"""End-to-end tests for UploadEngine with mocked network, clipboard and notifier."""
import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from fastdrop.errors import EntryNotFoundError, ErrorKind
from fastdrop.models import EngineConfig, ProviderKind, UploadState
from fastdrop.orchestrator import UploadEngine
from fastdrop.services.settings import SettingsStore


class Recorder:
    """Network, clipboard and notifier doubles sharing one call log."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self.log = []
        self.clipboard = AsyncMock()
        self.clipboard.copy.side_effect = lambda text: self.log.append(("copy", text))
        self.notifier = AsyncMock()
        self.notifier.notify.side_effect = self._notify

    def _notify(self, title, body, url=None):
        self.log.append(("notify", title, body, url))
        return True

    async def _handle(self, request):
        self.requests.append(request)
        response = self.handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    def engine(self, settings_dir, **config):
        config.setdefault("progress_interval", 0.01)
        return UploadEngine(
            config=EngineConfig(**config),
            settings=SettingsStore(settings_dir),
            clipboard=self.clipboard,
            notifier=self.notifier,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self._handle)),
        )


@pytest.fixture
def ten_bytes(tmp_path):
    path = tmp_path / "ten.txt"
    path.write_bytes(b"0123456789")
    return path


@pytest.fixture
def settings_dir(tmp_path, monkeypatch):
    for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "settings"


def _drive_handler(permission_status=200):
    def handler(request):
        if request.url.path.endswith("/permissions"):
            if permission_status >= 400:
                return httpx.Response(permission_status, json={"error": {"message": "The user does not have sufficient permissions"}})
            return httpx.Response(permission_status, json={"id": "anyoneWithLink"})
        return httpx.Response(200, json={"id": "drive-file-1"})

    return handler


@pytest.mark.asyncio
async def test_submit_path_twice_yields_one_entry(settings_dir, ten_bytes):
    recorder = Recorder(lambda r: httpx.Response(200, text="x"))
    async with recorder.engine(settings_dir) as engine:
        first = engine.submit_path(ten_bytes)
        second = engine.submit_path(str(ten_bytes))

        assert first.entry_id == second.entry_id
        assert len(engine.list_entries()) == 1


@pytest.mark.asyncio
async def test_anonymous_host_upload(settings_dir, ten_bytes):
    recorder = Recorder(lambda r: httpx.Response(200, text="\n https://0x0.st/XyZ.txt  \n"))
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)

    assert outcome.url == "https://0x0.st/XyZ.txt"
    assert entry.state == UploadState.SUCCESS
    assert entry.result_url == "https://0x0.st/XyZ.txt"
    assert len(recorder.requests) == 1
    assert recorder.requests[0].headers["User-Agent"] == "FastDrop/1.0"
    assert recorder.requests[0].url.host == "0x0.st"
    assert recorder.requests[0].method == "POST"


@pytest.mark.asyncio
async def test_provider_defaults_to_saved_selection(settings_dir, ten_bytes):
    recorder = Recorder(_drive_handler())
    async with recorder.engine(settings_dir) as engine:
        await engine.set_provider(ProviderKind.CLOUD_STORE)
        await engine.save_credentials("cid", "secret")
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id)

    assert outcome.url == "https://drive.google.com/file/d/drive-file-1/view"


@pytest.mark.asyncio
async def test_cloud_store_without_credentials_fails_fast(settings_dir, ten_bytes):
    recorder = Recorder(_drive_handler())
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.CLOUD_STORE)

    assert outcome.kind == ErrorKind.CONFIGURATION
    assert entry.state == UploadState.ERROR
    assert entry.error_kind == ErrorKind.CONFIGURATION
    assert entry.progress == 0
    assert recorder.requests == []
    recorder.notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_cloud_store_uses_environment_credentials(settings_dir, ten_bytes, monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "env-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "env-secret")
    recorder = Recorder(_drive_handler())
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.CLOUD_STORE)

    assert outcome.success is True
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_cloud_store_permission_failure_is_network_error(settings_dir, ten_bytes):
    recorder = Recorder(_drive_handler(permission_status=403))
    async with recorder.engine(settings_dir) as engine:
        await engine.save_credentials("cid", "secret")
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.CLOUD_STORE)

    assert outcome.kind == ErrorKind.NETWORK
    assert entry.state == UploadState.ERROR
    assert entry.error_kind == ErrorKind.NETWORK
    assert "sufficient permissions" in entry.error_message

    paths = [request.url.path for request in recorder.requests]
    assert paths == [
        "/upload/drive/v3/files",
        "/drive/v3/files/drive-file-1/permissions",
    ]
    recorder.notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_auto_copy_writes_clipboard_before_notifying(settings_dir, ten_bytes):
    recorder = Recorder(lambda r: httpx.Response(200, text="https://0x0.st/abc.txt\n"))
    async with recorder.engine(settings_dir) as engine:
        assert await engine.set_auto_copy(True) is True
        entry = engine.submit_path(ten_bytes)
        await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)

    assert recorder.log == [
        ("copy", "https://0x0.st/abc.txt"),
        (
            "notify",
            "FastDrop - Upload Complete",
            "ten.txt uploaded successfully! Link copied to clipboard.",
            "https://0x0.st/abc.txt",
        ),
    ]
    recorder.clipboard.copy.assert_awaited_once_with("https://0x0.st/abc.txt")


@pytest.mark.asyncio
async def test_without_auto_copy_only_notifies(settings_dir, ten_bytes):
    recorder = Recorder(lambda r: httpx.Response(200, text="https://0x0.st/abc.txt"))
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)

    recorder.clipboard.copy.assert_not_awaited()
    assert recorder.log == [
        (
            "notify",
            "FastDrop - Upload Complete",
            "ten.txt uploaded successfully! Click to view in app.",
            "https://0x0.st/abc.txt",
        ),
    ]


@pytest.mark.asyncio
async def test_side_effect_failures_keep_success(settings_dir, ten_bytes):
    recorder = Recorder(lambda r: httpx.Response(200, text="https://0x0.st/abc.txt"))
    recorder.clipboard.copy.side_effect = RuntimeError("no clipboard")
    recorder.notifier.notify.side_effect = RuntimeError("no notification daemon")
    async with recorder.engine(settings_dir) as engine:
        await engine.set_auto_copy(True)
        entry = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)

    assert outcome.success is True
    assert entry.state == UploadState.SUCCESS
    recorder.notifier.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_remove_while_in_flight(settings_dir, ten_bytes):
    release = asyncio.Event()

    async def slow_host(request):
        await release.wait()
        return httpx.Response(200, text="https://0x0.st/late.txt")

    recorder = Recorder(slow_host)
    async with recorder.engine(settings_dir) as engine:
        await engine.set_auto_copy(True)
        entry = engine.submit_path(ten_bytes)
        task = asyncio.create_task(engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST))
        await asyncio.sleep(0.05)

        assert engine.remove_entry(entry.entry_id) is True
        release.set()
        outcome = await task

        assert outcome.url == "https://0x0.st/late.txt"
        assert engine.list_entries() == []
        with pytest.raises(EntryNotFoundError):
            engine.registry.get(entry.entry_id)

    recorder.clipboard.copy.assert_not_awaited()
    recorder.notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_upload(settings_dir, ten_bytes):
    release = asyncio.Event()

    async def slow_host(request):
        await release.wait()
        return httpx.Response(200, text="https://0x0.st/kept.txt")

    recorder = Recorder(slow_host)
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        caller = asyncio.create_task(engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST))
        await asyncio.sleep(0.05)
        assert entry.state == UploadState.UPLOADING

        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        for _ in range(100):
            if entry.state.terminal:
                break
            await asyncio.sleep(0.01)

        assert entry.state == UploadState.SUCCESS
        assert entry.progress == 100
        assert entry.result_url == "https://0x0.st/kept.txt"

    recorder.notifier.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_exit_waits_for_detached_upload(settings_dir, ten_bytes):
    release = asyncio.Event()

    async def slow_host(request):
        await release.wait()
        return httpx.Response(200, text="https://0x0.st/late.txt")

    recorder = Recorder(slow_host)
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        caller = asyncio.create_task(engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST))
        await asyncio.sleep(0.05)
        caller.cancel()
        asyncio.get_running_loop().call_later(0.05, release.set)

    assert entry.state == UploadState.SUCCESS
    assert entry.result_url == "https://0x0.st/late.txt"


@pytest.mark.asyncio
async def test_retry_requires_remove_and_re_add(settings_dir, ten_bytes):
    responses = iter([httpx.Response(500, text="oops"), httpx.Response(200, text="https://0x0.st/ok")])
    recorder = Recorder(lambda r: next(responses))
    async with recorder.engine(settings_dir) as engine:
        entry = engine.submit_path(ten_bytes)
        failed = await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)
        assert failed.kind == ErrorKind.NETWORK
        assert engine.submit_path(ten_bytes).entry_id == entry.entry_id

        engine.remove_entry(entry.entry_id)
        fresh = engine.submit_path(ten_bytes)
        outcome = await engine.begin_upload(fresh.entry_id, ProviderKind.ANONYMOUS_HOST)

    assert outcome.url == "https://0x0.st/ok"
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_settings_round_trip(settings_dir):
    recorder = Recorder(lambda r: httpx.Response(200))
    engine = recorder.engine(settings_dir)

    assert await engine.get_credentials() is None
    assert await engine.get_auto_copy() is False
    await engine.save_credentials("cid", "secret")
    await engine.set_auto_copy(True)
    assert await engine.set_auto_start(True) is True

    credentials = await engine.get_credentials()
    assert (credentials.client_id, credentials.client_secret) == ("cid", "secret")
    assert await engine.get_auto_copy() is True
    assert await engine.get_auto_start() is True

    stored = json.loads((settings_dir / "config.json").read_text(encoding="utf-8"))
    assert stored == {
        "googleCredentials": {"clientId": "cid", "clientSecret": "secret"},
        "autoCopy": True,
        "autoStart": True,
    }


@pytest.mark.asyncio
async def test_notify_passthrough(settings_dir):
    recorder = Recorder(lambda r: httpx.Response(200))
    engine = recorder.engine(settings_dir)

    assert await engine.notify("Title", "Body", "https://x") is True
    assert recorder.log == [("notify", "Title", "Body", "https://x")]


@pytest.mark.asyncio
async def test_begin_upload_requires_context(tmp_path):
    engine = UploadEngine(settings=SettingsStore(tmp_path))
    entry = engine.submit_path(tmp_path / "a.txt")
    with pytest.raises(RuntimeError, match="not initialized"):
        await engine.begin_upload(entry.entry_id)
