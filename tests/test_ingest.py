"""Tests for the batch upload pipeline."""

from __future__ import annotations

import asyncio

import pytest

from sheetdesk.config import DEFAULT_CONFIG
from sheetdesk.ingest import UploadedFile, ingest_uploads
from sheetdesk.store import WorkbookStore


def _file(name: str, data: bytes, delay: float = 0.0) -> UploadedFile:
    async def _read() -> bytes:
        if delay:
            await asyncio.sleep(delay)
        return data

    return UploadedFile(filename=name, read=_read)


def _unreadable(name: str, exc: Exception) -> UploadedFile:
    async def _read() -> bytes:
        raise exc

    return UploadedFile(filename=name, read=_read)


@pytest.fixture
def store() -> WorkbookStore:
    return WorkbookStore()


class TestBatch:
    def test_mixed_batch(self, store) -> None:
        uploads = [
            UploadedFile.from_bytes("a.csv", b"Name,Age\nJohn,30"),
            UploadedFile.from_bytes("b.txt", b"ignored"),
            UploadedFile.from_bytes("c.csv", b"x\ny"),
        ]
        result = asyncio.run(ingest_uploads(store, uploads))

        assert result.applied is True
        assert [o.status for o in result.outcomes] == ["parsed", "rejected", "parsed"]
        assert result.sheet_ids == ["2", "3"]
        assert [s.name for s in store.collection.sheets] == [
            "Sheet1", "a.csv-Sheet1", "c.csv-Sheet1",
        ]
        assert store.collection.get("2").grid.to_scalars() == [["Name", "Age"], ["John", 30.0]]

        notices = store.drain_notifications()
        titles = [n.title for n in notices]
        assert titles.count("Unsupported file type") == 1
        assert titles.count("File processed successfully") == 2
        assert titles[-1] == "Data imported successfully"
        assert notices[-1].description == "Added 2 new sheet(s)."
        rejected = notices[titles.index("Unsupported file type")]
        assert rejected.variant == "destructive"
        assert "b.txt is not supported" in rejected.description

    def test_active_sheet_unchanged(self, store) -> None:
        asyncio.run(ingest_uploads(store, [UploadedFile.from_bytes("a.csv", b"1")]))
        assert store.active_sheet.id == "1"

    def test_upload_order_kept_when_reads_finish_out_of_order(self, store) -> None:
        uploads = [
            _file("slow.csv", b"s", delay=0.05),
            _file("fast.csv", b"f"),
        ]
        asyncio.run(ingest_uploads(store, uploads))
        assert [s.name for s in store.collection.sheets][1:] == [
            "slow.csv-Sheet1", "fast.csv-Sheet1",
        ]

    def test_spreadsheet_placeholder(self, store) -> None:
        result = asyncio.run(ingest_uploads(store, [UploadedFile.from_bytes("book.xlsx", b"PK")]))
        sheet = store.collection.get(result.sheet_ids[0])
        assert sheet.name == "book.xlsx-Sheet1"
        assert sheet.grid.stored_shape == (5, 4)


class TestFailures:
    def test_unsupported_file_is_never_read(self, store) -> None:
        upload = _unreadable("notes.txt", AssertionError("read called"))
        result = asyncio.run(ingest_uploads(store, [upload]))
        assert result.outcomes[0].status == "rejected"
        assert len(store.collection) == 1

    def test_parse_failure_isolated(self, store) -> None:
        uploads = [
            UploadedFile.from_bytes("bad.csv", b"\xff\xfe"),
            UploadedFile.from_bytes("good.csv", b"ok"),
        ]
        result = asyncio.run(ingest_uploads(store, uploads))
        assert [o.status for o in result.outcomes] == ["failed", "parsed"]
        assert [s.name for s in store.collection.sheets] == ["Sheet1", "good.csv-Sheet1"]
        failed = [n for n in store.drain_notifications() if n.title == "Error processing file"]
        assert len(failed) == 1
        assert failed[0].description == "Failed to process bad.csv. Please check the file format."
        assert failed[0].variant == "destructive"

    def test_read_error_isolated(self, store) -> None:
        uploads = [_unreadable("a.csv", OSError("disk gone")), UploadedFile.from_bytes("b.csv", b"1")]
        result = asyncio.run(ingest_uploads(store, uploads))
        assert result.outcomes[0].status == "failed"
        assert result.outcomes[0].error == "disk gone"
        assert result.sheet_ids == ["2"]

    def test_nothing_succeeded(self, store) -> None:
        result = asyncio.run(ingest_uploads(store, [UploadedFile.from_bytes("x.pdf", b"%PDF")]))
        assert result.sheet_ids == []
        assert len(store.collection) == 1
        titles = [n.title for n in store.drain_notifications()]
        assert titles == ["Unsupported file type"]

    def test_size_cap(self) -> None:
        store = WorkbookStore({**DEFAULT_CONFIG, "max_upload_bytes": 4})
        result = asyncio.run(ingest_uploads(store, [UploadedFile.from_bytes("big.csv", b"a,b,c,d")]))
        assert result.outcomes[0].status == "failed"
        assert "too large" in result.outcomes[0].error


class TestDisposal:
    def test_results_dropped_after_dispose(self, store) -> None:
        async def _read() -> bytes:
            store.dispose()
            return b"late"

        result = asyncio.run(ingest_uploads(store, [UploadedFile(filename="a.csv", read=_read)]))
        assert result.applied is False
        assert result.sheet_ids == []
        assert len(store.collection) == 1
        assert store.drain_notifications() == []

    def test_disposed_store_refuses_new_batch(self, store) -> None:
        store.dispose()
        with pytest.raises(ValueError):
            asyncio.run(ingest_uploads(store, [UploadedFile.from_bytes("a.csv", b"1")]))


class TestResultDict:
    def test_to_dict(self, store) -> None:
        result = asyncio.run(
            ingest_uploads(
                store,
                [UploadedFile.from_bytes("a.csv", b"1"), UploadedFile.from_bytes("b.doc", b"")],
            )
        )
        assert result.to_dict() == {
            "applied": True,
            "sheet_ids": ["2"],
            "files": [
                {"filename": "a.csv", "status": "parsed", "tables": ["Sheet1"]},
                {
                    "filename": "b.doc",
                    "status": "rejected",
                    "error": "File b.doc is not supported. Please use Excel (.xlsx, .xls) or CSV files.",
                },
            ],
        }


class TestOverlappingBatches:
    def test_both_batches_apply(self, store) -> None:
        async def scenario():
            slow = asyncio.create_task(ingest_uploads(store, [_file("slow.csv", b"s", delay=0.05)]))
            await asyncio.sleep(0)
            fast = await ingest_uploads(store, [_file("fast.csv", b"f")])
            return await slow, fast

        slow, fast = asyncio.run(scenario())
        assert slow.applied and fast.applied
        assert [s.name for s in store.collection.sheets] == [
            "Sheet1", "fast.csv-Sheet1", "slow.csv-Sheet1",
        ]


class TestFailureEvents:
    def test_read_errors_logged_as_errors(self, store, tmp_path) -> None:
        import json

        from sheetdesk.logging.events import set_log_dir

        set_log_dir(tmp_path / "logs")
        uploads = [
            _unreadable("gone.csv", OSError("disk gone")),
            UploadedFile.from_bytes("bad.csv", b"\xff\xfe"),
        ]
        asyncio.run(ingest_uploads(store, uploads))

        lines = (tmp_path / "logs" / "events.ndjson").read_text().splitlines()
        failed = [json.loads(l) for l in lines if '"import_file_failed"' in l]
        assert [(e["level"], e["error_code"]) for e in failed] == [
            ("error", "read_failure"),
            ("warning", "parse_failure"),
        ]
        assert failed[0]["context"] == {"filename": "gone.csv", "reason": "disk gone"}
