"""
Tests for simple_index.storage.blob_store
"""

from pathlib import Path

import pytest

from simple_index.domain.errors import IOFailure
from simple_index.storage.blob_store import BlobStore

FILENAME = "pkg-1.0-py3-none-any.whl"


class TestStagePromote:
    @pytest.mark.asyncio
    async def test_staged_blob_is_not_visible(self, blob_store: BlobStore) -> None:
        staged = await blob_store.stage("pkg", FILENAME, b"wheel-bytes")

        assert staged.path.read_bytes() == b"wheel-bytes"
        assert staged.path.name.startswith(".")
        assert not blob_store.exists("pkg", FILENAME)

    @pytest.mark.asyncio
    async def test_each_stage_gets_its_own_file(self, blob_store: BlobStore) -> None:
        first = await blob_store.stage("pkg", FILENAME, b"first")
        second = await blob_store.stage("pkg", FILENAME, b"second")

        assert first.path != second.path
        assert first.path.read_bytes() == b"first"
        assert second.path.read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_promote_moves_into_place(self, blob_store: BlobStore) -> None:
        staged = await blob_store.stage("pkg", FILENAME, b"wheel-bytes")
        target = blob_store.promote(staged)

        assert target == blob_store.packages_dir / "pkg" / FILENAME
        assert target.read_bytes() == b"wheel-bytes"
        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_promote_replaces_existing_blob(self, blob_store: BlobStore) -> None:
        blob_store.promote(await blob_store.stage("pkg", FILENAME, b"old"))
        blob_store.promote(await blob_store.stage("pkg", FILENAME, b"new"))
        assert blob_store.path_for("pkg", FILENAME).read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_discard_removes_staged_file(self, blob_store: BlobStore) -> None:
        staged = await blob_store.stage("pkg", FILENAME, b"wheel-bytes")
        blob_store.discard(staged)
        assert not staged.path.exists()
        assert list(blob_store.iter_staged()) == []

    @pytest.mark.asyncio
    async def test_promote_failure_raises_io_failure(self, blob_store: BlobStore) -> None:
        staged = await blob_store.stage("pkg", FILENAME, b"wheel-bytes")
        staged.path.unlink()
        with pytest.raises(IOFailure):
            blob_store.promote(staged)

    @pytest.mark.asyncio
    async def test_stage_failure_raises_io_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "packages"
        blocker.write_text("not a directory", encoding="utf-8")
        with pytest.raises(IOFailure):
            await BlobStore(blocker).stage("pkg", FILENAME, b"wheel-bytes")


class TestIterStaged:
    @pytest.mark.asyncio
    async def test_lists_only_staged_files(self, blob_store: BlobStore) -> None:
        blob_store.promote(await blob_store.stage("done", FILENAME, b"x"))
        pending = await blob_store.stage("pending", FILENAME, b"y")

        staged = list(blob_store.iter_staged())

        assert [(s.name, s.filename) for s in staged] == [("pending", FILENAME)]
        assert staged[0].path == pending.path

    @pytest.mark.asyncio
    async def test_concurrent_stages_of_one_filename(self, blob_store: BlobStore) -> None:
        await blob_store.stage("pkg", FILENAME, b"a")
        await blob_store.stage("pkg", FILENAME, b"b")

        staged = list(blob_store.iter_staged())

        assert [(s.name, s.filename) for s in staged] == [("pkg", FILENAME)] * 2
        assert sorted(s.path.read_bytes() for s in staged) == [b"a", b"b"]

    def test_ignores_unrelated_hidden_files(self, blob_store: BlobStore) -> None:
        pkg_dir = blob_store.packages_dir / "pkg"
        pkg_dir.mkdir(parents=True)
        (pkg_dir / ".DS_Store").write_bytes(b"")
        (pkg_dir / f".{FILENAME}.notatoken.upload").write_bytes(b"")

        assert list(blob_store.iter_staged()) == []

    def test_missing_packages_dir(self, tmp_path: Path) -> None:
        assert list(BlobStore(tmp_path / "missing").iter_staged()) == []
