"""
Archives Transfer Service — API Endpoint Tests
================================================

What:  HTTP-level tests for every route through httpx's ASGITransport.
How:   Each test gets a fresh app with its own upload root and SQLite store.

What we test:
    ✅ /identifier issues distinct tokens
    ✅ /upload status codes: 200, 400, 409, 422
    ✅ /upload chunked reassembly and per-chunk acknowledgment
    ✅ /genres with a seeded store and with a broken one
    ✅ /version and /healthcheck (reachable and unreachable store)
"""

import pytest
from httpx import ASGITransport, AsyncClient

from transfer_service import __version__
from transfer_service.config import Settings
from transfer_service.main import create_app


class TestIdentifier:

    @pytest.mark.asyncio
    async def test_identifiers_are_unique(self, test_client):
        first = await test_client.get("/identifier")
        second = await test_client.get("/identifier")

        assert first.status_code == 200
        assert first.headers["content-type"].startswith("text/plain")
        assert first.text and second.text
        assert first.text != second.text

    @pytest.mark.asyncio
    async def test_identifier_is_usable_as_directory(self, test_client, upload_root):
        identifier = (await test_client.get("/identifier")).text
        response = await test_client.post(
            "/upload",
            data={"identifier": identifier},
            files={"file": ("doc.txt", b"hello")},
        )
        assert response.status_code == 200
        assert (upload_root / identifier / "doc.txt").read_bytes() == b"hello"


class TestSingleShotUpload:

    @pytest.mark.asyncio
    async def test_upload_returns_submitted(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": "sub1"},
            files={"file": ("letter.txt", b"Dear archivist")},
        )

        assert response.status_code == 200
        assert response.text == "Submitted"
        assert (upload_root / "sub1" / "letter.txt").read_bytes() == b"Dear archivist"

    @pytest.mark.asyncio
    async def test_missing_identifier_is_400_and_creates_nothing(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": ""},
            files={"file": ("letter.txt", b"Dear archivist")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert list(upload_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_file_part_is_400(self, test_client, upload_root):
        response = await test_client.post("/upload", data={"identifier": "sub1"})

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "file"
        assert not (upload_root / "sub1").exists()

    @pytest.mark.asyncio
    async def test_text_field_in_place_of_file_is_400(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": "sub1", "file": "notafile"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "file"
        assert "request_id" in body
        assert not (upload_root / "sub1").exists()

    @pytest.mark.asyncio
    async def test_padded_identifier_is_400(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": " sub1 "},
            files={"file": ("letter.txt", b"Dear archivist")},
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "identifier"
        assert list(upload_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_duplicate_upload_is_409(self, test_client, upload_root):
        files = {"file": ("dup.txt", b"first")}
        first = await test_client.post("/upload", data={"identifier": "sub1"}, files=files)
        second = await test_client.post(
            "/upload",
            data={"identifier": "sub1"},
            files={"file": ("dup.txt", b"second")},
        )

        assert first.status_code == 200
        assert second.status_code == 409
        assert "already exists" in second.json()["message"]
        assert (upload_root / "sub1" / "dup.txt").read_bytes() == b"first"

    @pytest.mark.asyncio
    async def test_traversal_filename_stays_in_area(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": "sub1"},
            files={"file": ("../../outside.txt", b"payload")},
        )

        assert response.status_code == 200
        assert (upload_root / "sub1" / "outside.txt").read_bytes() == b"payload"
        assert not (upload_root / "outside.txt").exists()
        assert not (upload_root.parent / "outside.txt").exists()

    @pytest.mark.asyncio
    async def test_response_carries_request_id(self, test_client):
        response = await test_client.post(
            "/upload",
            data={"identifier": "sub1"},
            files={"file": ("a.txt", b"a")},
            headers={"X-Request-ID": "trace-123"},
        )
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("client_id", ["has space", "x" * 65, "../etc"])
    async def test_malformed_request_id_is_replaced(self, test_client, client_id):
        response = await test_client.get("/version", headers={"X-Request-ID": client_id})

        rid = response.headers["X-Request-ID"]
        assert rid != client_id
        assert len(rid) == 12
        int(rid, 16)

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.post(
            "/upload",
            data={"identifier": ""},
            files={"file": ("a.txt", b"a")},
            headers={"X-Request-ID": "chunk-7"},
        )
        assert response.json()["request_id"] == "chunk-7"


class TestChunkedUpload:

    async def _send_chunk(self, client, index, data, total=3, total_size=6, filename="movie.bin"):
        return await client.post(
            "/upload",
            data={
                "identifier": "sub1",
                "dzchunkindex": str(index),
                "dztotalfilesize": str(total_size),
                "dzchunksize": "2",
                "dztotalchunkcount": str(total),
            },
            files={"file": (filename, data)},
        )

    @pytest.mark.asyncio
    async def test_chunks_reassemble_in_order(self, test_client, upload_root):
        responses = [
            await self._send_chunk(test_client, i, data)
            for i, data in enumerate([b"AB", b"CD", b"EF"])
        ]

        assert [r.status_code for r in responses] == [200, 200, 200]
        bodies = [r.json() for r in responses]
        assert [b["status"] for b in bodies] == ["chunk_received", "chunk_received", "complete"]
        assert bodies[-1]["size"] == 6
        assert bodies[-1]["chunk_index"] == 2
        assert (upload_root / "sub1" / "movie.bin").read_bytes() == b"ABCDEF"

    @pytest.mark.asyncio
    async def test_chunk_index_zero_selects_chunked_mode(self, test_client):
        response = await self._send_chunk(test_client, 0, b"AB")

        assert response.status_code == 200
        assert response.json()["status"] == "chunk_received"

    @pytest.mark.asyncio
    async def test_first_chunk_onto_existing_file_is_409(self, test_client, upload_root):
        area = upload_root / "sub1"
        area.mkdir()
        (area / "movie.bin").write_bytes(b"already here")

        response = await self._send_chunk(test_client, 0, b"AB")

        assert response.status_code == 409
        assert (area / "movie.bin").read_bytes() == b"already here"

    @pytest.mark.asyncio
    async def test_size_mismatch_is_422(self, test_client):
        await self._send_chunk(test_client, 0, b"AB", total=2, total_size=5)
        response = await self._send_chunk(test_client, 1, b"CD", total=2, total_size=5)

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "incomplete_upload"
        assert body["details"]["expected_size"] == 5
        assert body["details"]["actual_size"] == 4

    @pytest.mark.asyncio
    async def test_chunk_index_past_last_chunk_is_400(self, test_client, upload_root):
        response = await self._send_chunk(test_client, 5, b"AB", total=3)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "dzchunkindex"
        assert not (upload_root / "sub1").exists()

    @pytest.mark.asyncio
    async def test_non_integer_chunk_index_is_400(self, test_client, upload_root):
        response = await test_client.post(
            "/upload",
            data={"identifier": "sub1", "dzchunkindex": "first"},
            files={"file": ("movie.bin", b"AB")},
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "dzchunkindex"
        assert not (upload_root / "sub1").exists()


class TestGenres:

    @pytest.mark.asyncio
    async def test_lists_genres(self, test_client, seeded_store):
        response = await test_client.get("/genres")

        assert response.status_code == 200
        assert sorted(response.json(), key=lambda g: g["id"]) == [
            {"id": 1, "name": "Manuscripts"},
            {"id": 2, "name": "Photographs"},
        ]

    @pytest.mark.asyncio
    async def test_query_failure_is_500_with_driver_message(self, test_client):
        # No tables were created in this store
        response = await test_client.get("/genres")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "database_error"
        assert body["message"].startswith("Unable to retrieve genres")


class TestVersionAndHealth:

    @pytest.mark.asyncio
    async def test_version(self, test_client):
        response = await test_client.get("/version")

        assert response.status_code == 200
        assert response.text == f"Archives Transfer Service version {__version__}"

    @pytest.mark.asyncio
    async def test_healthy_store(self, test_client, seeded_store):
        response = await test_client.get("/healthcheck")

        assert response.status_code == 200
        assert response.json() == {"alive": True, "mysql": True}

    @pytest.mark.asyncio
    async def test_store_without_versions_is_unhealthy(self, test_client):
        response = await test_client.get("/healthcheck")

        assert response.status_code == 500
        assert response.json() == {"alive": True, "mysql": False}

    @pytest.mark.asyncio
    async def test_unreachable_store_is_unhealthy(self, tmp_path, upload_root):
        settings = Settings(
            upload_dir=str(upload_root),
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'store.db'}",
        )
        app = create_app(settings)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/healthcheck")
            # The process keeps serving after the failed probe
            version = await client.get("/version")

        assert response.status_code == 500
        assert response.json() == {"alive": True, "mysql": False}
        assert version.status_code == 200
        await app.state.context.database.dispose()
