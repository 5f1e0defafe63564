"""Tests for download orchestration and the transporters."""
import pytest

from src.delivery.budget import MEMORY_CEILING
from src.delivery.models import TransferRequest
from src.delivery.service import DownloadTransfer, build_transporter
from src.delivery.transport import (
    CHUNK_SIZE,
    OffloadTransporter,
    StreamingTransporter,
    iter_file,
)
from src.utils.exceptions import FileMissingError, FileNotReadableError, FileTooLargeError

MIB = 1024 * 1024


def _request(path, **kwargs):
    kwargs.setdefault("display_name", path.name)
    return TransferRequest(file_path=str(path), **kwargs)


def _header_values(response, name):
    key = name.lower().encode("latin-1")
    return [value.decode("utf-8") for k, value in response.raw_headers if k == key]


async def _body(response):
    if hasattr(response, "body_iterator"):
        return b"".join([chunk async for chunk in response.body_iterator])
    return response.body


@pytest.fixture
def streaming():
    return DownloadTransfer(StreamingTransporter(), memory_limit="128M")


class TestValidation:
    def test_missing_file(self, streaming, files_root):
        with pytest.raises(FileMissingError):
            streaming.transfer(_request(files_root / "absent.bin"))

    def test_unreadable_file(self, streaming, make_file, monkeypatch):
        path = make_file("secret.bin", 10)
        monkeypatch.setattr("src.delivery.service.os.access", lambda *args, **kwargs: False)
        with pytest.raises(FileNotReadableError):
            streaming.transfer(_request(path))

    def test_directory_is_not_readable_file(self, streaming, files_root):
        (files_root / "folder").mkdir()
        with pytest.raises(FileNotReadableError):
            streaming.transfer(_request(files_root / "folder"))

    def test_bad_memory_limit_fails_at_construction(self):
        with pytest.raises(ValueError):
            DownloadTransfer(StreamingTransporter(), memory_limit="plenty")


class TestHeaders:
    def test_generic_content_type_pair(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.bin", 10)))
        assert _header_values(outcome.response, "content-type") == [
            "application/force-download",
            "application/octet-stream",
        ]

    def test_supplied_content_type(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.pdf", 10), mime_type="application/pdf"))
        assert _header_values(outcome.response, "content-type") == ["application/pdf"]

    def test_disposition_for_legacy_client(self, streaming, make_file, legacy_user_agent):
        path = make_file("stored-ab12", 10)
        outcome = streaming.transfer(_request(path, display_name="Q3 results.xlsx"), user_agent=legacy_user_agent)
        [disposition] = _header_values(outcome.response, "content-disposition")
        assert disposition.startswith("attachment; filename=Q3+results.xlsx; modification-date=")

    def test_disposition_for_modern_client(self, streaming, make_file, modern_user_agent):
        path = make_file("stored-ab12", 10)
        outcome = streaming.transfer(_request(path, display_name="raport roczny.pdf"), user_agent=modern_user_agent)
        [disposition] = _header_values(outcome.response, "content-disposition")
        assert disposition.startswith('attachment; filename="raport roczny.pdf"; modification-date="')
        assert disposition.endswith(' GMT";')


class TestStreaming:
    @pytest.mark.asyncio
    async def test_content_length_matches_file(self, streaming, make_file):
        path = make_file("data.bin", 5000)
        outcome = streaming.transfer(_request(path))
        assert outcome.success is True
        assert _header_values(outcome.response, "content-length") == ["5000"]
        assert await _body(outcome.response) == path.read_bytes()

    def test_declared_size_is_trusted(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("data.bin", 100), declared_size=42))
        assert outcome.size == 42
        assert _header_values(outcome.response, "content-length") == ["42"]

    def test_threshold_uses_single_read(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("exact.bin", CHUNK_SIZE)))
        assert outcome.strategy == "single"

    @pytest.mark.asyncio
    async def test_above_threshold_uses_chunks(self, streaming, make_file):
        path = make_file("bigger.bin", CHUNK_SIZE + 1)
        outcome = streaming.transfer(_request(path))
        assert outcome.strategy == "chunked"
        chunks = [chunk async for chunk in outcome.response.body_iterator]
        assert [len(c) for c in chunks] == [CHUNK_SIZE, 1]
        assert b"".join(chunks) == path.read_bytes()

    def test_compression_disabled(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.txt", 10)))
        assert outcome.budget.compression is False
        assert _header_values(outcome.response, "content-encoding") == ["identity"]

    def test_time_budget(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.bin", 10)))
        assert outcome.budget.time_limit == 60

    def test_empty_file_gets_one_second(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("empty.bin", 0)))
        assert outcome.budget.time_limit == 1
        assert outcome.strategy == "single"

    def test_memory_budget_raised_for_large_declared_size(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.bin", 10), declared_size=600 * MIB))
        assert outcome.budget.memory_limit == 900 * MIB

    def test_memory_budget_left_over_ceiling(self, streaming, make_file):
        outcome = streaming.transfer(_request(make_file("a.bin", 10), declared_size=900 * MIB))
        assert outcome.success is True
        assert outcome.budget.memory_limit == 128 * MIB
        assert outcome.budget.memory_limit <= MEMORY_CEILING

    def test_strict_budget_refuses_over_ceiling(self, make_file):
        strict = DownloadTransfer(StreamingTransporter(strict_memory_budget=True), memory_limit="128M")
        with pytest.raises(FileTooLargeError):
            strict.transfer(_request(make_file("a.bin", 10), declared_size=900 * MIB))

    def test_budgets_are_per_request(self, streaming, make_file):
        path = make_file("a.bin", 10)
        streaming.transfer(_request(path, declared_size=600 * MIB))
        outcome = streaming.transfer(_request(path))
        assert outcome.budget.memory_limit == 128 * MIB

    def test_chunked_open_failure_reports_failure(self, streaming, make_file, monkeypatch):
        path = make_file("bigger.bin", CHUNK_SIZE + 1)

        def refuse(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("src.delivery.transport.open", refuse, raising=False)
        outcome = streaming.transfer(_request(path))
        assert outcome.success is False
        assert outcome.strategy == "chunked"
        assert outcome.response is None


class TestIterFile:
    def test_reads_until_eof(self, make_file):
        path = make_file("ten.bin", content=b"abcdefghij")
        assert list(iter_file(path, chunk_size=4)) == [b"abcd", b"efgh", b"ij"]

    def test_stops_after_deadline(self, make_file):
        path = make_file("ten.bin", content=b"abcdefghij")
        assert list(iter_file(path, chunk_size=4, deadline=0.0)) == []

    def test_unsent_response_holds_no_descriptor(self, streaming, make_file, monkeypatch):
        path = make_file("bigger.bin", CHUNK_SIZE + 1)
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            handle = real_open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr("src.delivery.transport.open", tracking_open, raising=False)
        outcome = streaming.transfer(_request(path))
        assert outcome.strategy == "chunked"
        # The response is dropped without being iterated.
        assert all(handle.closed for handle in opened)

    def test_closes_after_full_read(self, make_file, monkeypatch):
        path = make_file("ten.bin", content=b"abcdefghij")
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            handle = real_open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr("src.delivery.transport.open", tracking_open, raising=False)
        assert b"".join(iter_file(path, chunk_size=4)) == b"abcdefghij"
        assert len(opened) == 1
        assert opened[0].closed


class TestOffload:
    def test_directive_replaces_body(self, make_file):
        path = make_file("a.bin", 5000)
        transfer = DownloadTransfer(OffloadTransporter(), memory_limit="128M")
        outcome = transfer.transfer(_request(path))
        assert outcome.success is True
        assert outcome.strategy == "offload"
        assert _header_values(outcome.response, "x-sendfile") == [str(path)]
        assert _header_values(outcome.response, "content-length") == []
        assert outcome.response.body == b""

    def test_custom_header(self, make_file):
        path = make_file("a.bin", 10)
        transfer = DownloadTransfer(OffloadTransporter("X-Lighttpd-Send-File"))
        outcome = transfer.transfer(_request(path))
        assert _header_values(outcome.response, "x-lighttpd-send-file") == [str(path)]

    def test_offload_still_validates(self, files_root):
        transfer = DownloadTransfer(OffloadTransporter())
        with pytest.raises(FileMissingError):
            transfer.transfer(_request(files_root / "absent.bin"))


class TestBuildTransporter:
    def test_modes(self):
        assert isinstance(build_transporter("offload"), OffloadTransporter)
        streaming = build_transporter("stream", chunk_size=4096)
        assert isinstance(streaming, StreamingTransporter)
        assert streaming.chunk_size == 4096

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            build_transporter("carrier-pigeon")
