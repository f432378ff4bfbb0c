"""Unit tests for the sync engine."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from pyuilicious.exceptions import (
    UiliciousAPIError,
    UiliciousDownloadError,
    UiliciousFileExistsError,
    UiliciousLocalFileError,
    UiliciousUploadError,
)
from pyuilicious.models import FILE, FOLDER, RemoteNode, build_remote_tree
from pyuilicious.sync import (
    DEFAULT_ERROR_POLICIES,
    ErrorPolicy,
    SyncContext,
    SyncEngine,
    UploadKind,
)
from pyuilicious.utils import EMPTY_FILE_PLACEHOLDER


def make_tree(root: Path, files: dict) -> None:
    """Create files below root from a {relative_path: content} mapping."""
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)


@pytest.fixture
def mock_client():
    """Provide a client mock with async API methods."""
    client = Mock()
    client.put_file = AsyncMock(return_value=True)
    client.upload_raw_file = AsyncMock(return_value=True)
    client.get_file = AsyncMock(side_effect=lambda project_id, path: f"// {path}")
    client.list_files = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_output():
    return Mock()


def make_engine(client, output, **kwargs):
    return SyncEngine(SyncContext(client=client, output=output, **kwargs))


def uploaded_paths(client):
    """Return the remote paths of all upload calls, sorted."""
    calls = client.put_file.await_args_list + client.upload_raw_file.await_args_list
    return sorted(call.kwargs["file_path"] for call in calls)


class TestImportFolderContents:
    """Tests for SyncEngine.import_folder_contents."""

    @pytest.mark.asyncio
    async def test_uploads_every_visible_file(self, tmp_path, mock_client, mock_output):
        """Test that each non-hidden file is uploaded under its relative path."""
        make_tree(
            tmp_path,
            {
                "top.js": "a",
                "suite/login.js": "b",
                "suite/img/logo.png": b"png",
                ".env": "secret",
                "suite/.hidden/skip.js": "c",
            },
        )
        engine = make_engine(mock_client, mock_output)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert uploaded_paths(mock_client) == [
            "suite/img/logo.png",
            "suite/login.js",
            "top.js",
        ]
        assert stats == {"uploads": 3, "skips": 0, "errors": 0}

    @pytest.mark.asyncio
    async def test_double_dot_folder_uploaded(self, tmp_path, mock_client, mock_output):
        """Test that files below a ..name folder are uploaded."""
        make_tree(tmp_path, {"..assets/login.js": "x"})
        engine = make_engine(mock_client, mock_output)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert uploaded_paths(mock_client) == ["..assets/login.js"]
        assert stats["uploads"] == 1

    @pytest.mark.asyncio
    async def test_upload_kind_by_extension(self, tmp_path, mock_client, mock_output):
        """Test that media files use the raw upload and others the text upload."""
        make_tree(tmp_path, {"a.jpg": b"jpg", "b.png": b"png", "c.js": "x"})
        engine = make_engine(mock_client, mock_output)

        await engine.import_folder_contents("p1", tmp_path)

        raw = sorted(
            call.kwargs["file_path"]
            for call in mock_client.upload_raw_file.await_args_list
        )
        assert raw == ["a.jpg", "b.png"]
        mock_client.put_file.assert_awaited_once()
        assert mock_client.put_file.await_args.kwargs["file_path"] == "c.js"

    @pytest.mark.asyncio
    async def test_empty_file_sends_placeholder(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that an empty script is uploaded with the placeholder body."""
        make_tree(tmp_path, {"empty.js": ""})
        engine = make_engine(mock_client, mock_output)

        await engine.import_folder_contents("p1", tmp_path)

        content = mock_client.put_file.await_args.kwargs["content"]
        assert content == EMPTY_FILE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_overwrite_passed_to_uploads(
        self, tmp_path, mock_client, mock_output
    ):
        make_tree(tmp_path, {"a.js": "x", "b.png": b"y"})
        engine = make_engine(mock_client, mock_output, overwrite=True)

        await engine.import_folder_contents("p1", tmp_path)

        assert mock_client.put_file.await_args.kwargs["overwrite"] is True
        assert mock_client.upload_raw_file.await_args.kwargs["overwrite"] is True

    @pytest.mark.asyncio
    async def test_existing_files_are_skipped(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that FILE_ALREADY_EXISTS counts as a skip, not a failure."""
        make_tree(tmp_path, {"new.js": "x", "old.js": "y"})

        async def put_file(project_id, file_path, content, overwrite):
            if file_path == "old.js":
                raise UiliciousFileExistsError()
            return True

        mock_client.put_file.side_effect = put_file
        engine = make_engine(mock_client, mock_output, verbose=True)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert stats == {"uploads": 1, "skips": 1, "errors": 0}
        messages = [call.args[0] for call in mock_output.info.call_args_list]
        assert "existing file found (old.js) -> Skipping" in messages
        assert "uploading test script (new.js)" in messages

    @pytest.mark.asyncio
    async def test_verbose_overwrite_message(self, tmp_path, mock_client, mock_output):
        make_tree(tmp_path, {"a.js": "x"})
        engine = make_engine(mock_client, mock_output, verbose=True, overwrite=True)

        await engine.import_folder_contents("p1", tmp_path)

        mock_output.info.assert_called_with(
            "Uploading test script (a.js) with overwrite mode enabled"
        )

    @pytest.mark.asyncio
    async def test_quiet_without_verbose(self, tmp_path, mock_client, mock_output):
        make_tree(tmp_path, {"a.js": "x"})
        engine = make_engine(mock_client, mock_output)

        await engine.import_folder_contents("p1", tmp_path)

        mock_output.info.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_failure_fails_import(self, tmp_path, mock_client, mock_output):
        """Test that a failing script upload fails the whole import."""
        make_tree(tmp_path, {"bad.js": "x"})
        mock_client.put_file.side_effect = UiliciousAPIError("boom", code="E1")
        engine = make_engine(mock_client, mock_output)

        with pytest.raises(UiliciousUploadError, match=r"\(bad.js\)") as exc_info:
            await engine.import_folder_contents("p1", tmp_path)

        assert exc_info.value.code == "E1"

    @pytest.mark.asyncio
    async def test_media_failure_is_logged_and_ignored(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that a failing media upload does not fail the import."""
        make_tree(tmp_path, {"a.js": "x", "logo.png": b"png"})
        mock_client.upload_raw_file.side_effect = UiliciousAPIError("too big")
        engine = make_engine(mock_client, mock_output)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert stats == {"uploads": 1, "skips": 0, "errors": 1}
        mock_output.error.assert_called_once()
        assert "logo.png" in mock_output.error.call_args.args[0]

    @pytest.mark.asyncio
    async def test_strict_media_policy(self, tmp_path, mock_client, mock_output):
        """Test that media failures fail the import under the strict policy."""
        make_tree(tmp_path, {"logo.png": b"png"})
        mock_client.upload_raw_file.side_effect = UiliciousAPIError("too big")
        policies = dict(DEFAULT_ERROR_POLICIES)
        policies[UploadKind.RAW] = ErrorPolicy.STRICT
        engine = make_engine(mock_client, mock_output, error_policies=policies)

        with pytest.raises(UiliciousUploadError):
            await engine.import_folder_contents("p1", tmp_path)

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that other uploads keep running after the first failure."""
        make_tree(tmp_path, {"bad.js": "x", "a.js": "x", "b.js": "x", "c.js": "x"})
        finished = []
        release = asyncio.Event()

        async def put_file(project_id, file_path, content, overwrite):
            if file_path == "bad.js":
                raise UiliciousAPIError("boom")
            await release.wait()
            finished.append(file_path)
            return True

        mock_client.put_file.side_effect = put_file
        engine = make_engine(mock_client, mock_output)

        with pytest.raises(UiliciousUploadError):
            await engine.import_folder_contents("p1", tmp_path)

        assert finished == []
        release.set()
        await engine.drain()

        assert sorted(finished) == ["a.js", "b.js", "c.js"]
        assert not engine._pending

    @pytest.mark.asyncio
    async def test_empty_folder(self, tmp_path, mock_client, mock_output):
        engine = make_engine(mock_client, mock_output)
        stats = await engine.import_folder_contents("p1", tmp_path)
        assert stats == {"uploads": 0, "skips": 0, "errors": 0}

    @pytest.mark.asyncio
    async def test_missing_folder(self, tmp_path, mock_client, mock_output):
        engine = make_engine(mock_client, mock_output)
        with pytest.raises(UiliciousLocalFileError, match="does not exist"):
            await engine.import_folder_contents("p1", tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_file_instead_of_folder(self, tmp_path, mock_client, mock_output):
        (tmp_path / "a.js").write_text("x")
        engine = make_engine(mock_client, mock_output)
        with pytest.raises(UiliciousLocalFileError, match="not a folder"):
            await engine.import_folder_contents("p1", tmp_path / "a.js")


class TestExportTestDirectory:
    """Tests for SyncEngine.export_test_directory."""

    @pytest.fixture
    def listing(self):
        return [
            RemoteNode(path="suite", type=FOLDER),
            RemoteNode(path="suite/login.js", type=FILE),
            RemoteNode(path="suite/deep/a.js", type=FILE),
            RemoteNode(path="top.js", type=FILE),
            RemoteNode(path="suiteX/b.js", type=FILE),
        ]

    @pytest.mark.asyncio
    async def test_exports_every_file(
        self, tmp_path, mock_client, mock_output, listing
    ):
        """Test that each file of the listing is written to its path."""
        mock_client.list_files.return_value = listing
        engine = make_engine(mock_client, mock_output)

        stats = await engine.export_test_directory("p1", tmp_path)

        assert stats == {"downloads": 4}
        assert (tmp_path / "suite" / "login.js").read_text() == "// suite/login.js"
        assert (tmp_path / "suite" / "deep" / "a.js").exists()
        assert (tmp_path / "top.js").exists()
        assert (tmp_path / "suiteX" / "b.js").exists()

    @pytest.mark.asyncio
    async def test_folder_filter(self, tmp_path, mock_client, mock_output, listing):
        """Test that only files at or below the folder are exported."""
        mock_client.list_files.return_value = listing
        engine = make_engine(mock_client, mock_output)

        stats = await engine.export_test_directory("p1", tmp_path, folder="/suite/")

        assert stats == {"downloads": 2}
        assert (tmp_path / "suite" / "login.js").exists()
        assert not (tmp_path / "suiteX").exists()
        assert not (tmp_path / "top.js").exists()

    @pytest.mark.asyncio
    async def test_verbose_messages(self, tmp_path, mock_client, mock_output):
        mock_client.list_files.return_value = [RemoteNode(path="a.js", type=FILE)]
        engine = make_engine(mock_client, mock_output, verbose=True)

        await engine.export_test_directory("p1", tmp_path)

        messages = [call.args[0] for call in mock_output.info.call_args_list]
        assert messages == [
            "downloading test script (a.js)",
            "saved tests scripts to your local directory",
        ]

    @pytest.mark.asyncio
    async def test_download_failure_fails_export(
        self, tmp_path, mock_client, mock_output
    ):
        mock_client.list_files.return_value = [RemoteNode(path="a.js", type=FILE)]
        mock_client.get_file.side_effect = UiliciousAPIError("gone")
        engine = make_engine(mock_client, mock_output)

        with pytest.raises(UiliciousDownloadError):
            await engine.export_test_directory("p1", tmp_path)

    @pytest.mark.asyncio
    async def test_empty_project(self, tmp_path, mock_client, mock_output):
        engine = make_engine(mock_client, mock_output)
        assert await engine.export_test_directory("p1", tmp_path) == {"downloads": 0}


class TestExportDirectoryNode:
    """Tests for SyncEngine.export_directory_node_to_directory_path."""

    @pytest.mark.asyncio
    async def test_none_node(self, tmp_path, mock_client, mock_output):
        engine = make_engine(mock_client, mock_output)
        count = await engine.export_directory_node_to_directory_path(
            "p1", None, tmp_path
        )
        assert count == 0
        mock_client.get_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_root_exports_into_directory(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that the unnamed root exports its children in place."""
        root = build_remote_tree(
            [
                RemoteNode(path="suite/login.js", type=FILE),
                RemoteNode(path="suite/img/logo.png", type=FILE),
                RemoteNode(path="top.js", type=FILE),
            ]
        )
        engine = make_engine(mock_client, mock_output)

        count = await engine.export_directory_node_to_directory_path(
            "p1", root, tmp_path
        )

        assert count == 3
        assert (tmp_path / "suite" / "login.js").read_text() == "// suite/login.js"
        assert (tmp_path / "suite" / "img" / "logo.png").exists()
        assert (tmp_path / "top.js").exists()
        assert not (tmp_path / "suite" / "suite").exists()

    @pytest.mark.asyncio
    async def test_folder_node_creates_folder(
        self, tmp_path, mock_client, mock_output
    ):
        """Test that a folder node is recreated below the directory."""
        root = build_remote_tree([RemoteNode(path="a/b/c.js", type=FILE)])
        engine = make_engine(mock_client, mock_output)

        count = await engine.export_directory_node_to_directory_path(
            "p1", root.find("a/b"), tmp_path
        )

        assert count == 1
        assert (tmp_path / "b" / "c.js").read_text() == "// a/b/c.js"

    @pytest.mark.asyncio
    async def test_empty_folder_is_created(self, tmp_path, mock_client, mock_output):
        root = build_remote_tree([RemoteNode(path="empty", type=FOLDER)])
        engine = make_engine(mock_client, mock_output)

        count = await engine.export_directory_node_to_directory_path(
            "p1", root, tmp_path
        )

        assert count == 0
        assert (tmp_path / "empty").is_dir()

    @pytest.mark.asyncio
    async def test_file_node(self, tmp_path, mock_client, mock_output):
        engine = make_engine(mock_client, mock_output)
        count = await engine.export_directory_node_to_directory_path(
            "p1", RemoteNode(path="x/y.js", type=FILE), tmp_path
        )
        assert count == 1
        assert (tmp_path / "y.js").read_text() == "// x/y.js"

    @pytest.mark.asyncio
    async def test_failure_propagates(self, tmp_path, mock_client, mock_output):
        """Test that a failing file fails the whole export."""
        root = build_remote_tree(
            [RemoteNode(path="a.js", type=FILE), RemoteNode(path="b.js", type=FILE)]
        )

        async def get_file(project_id, path):
            if path == "b.js":
                raise UiliciousAPIError("gone")
            return "ok"

        mock_client.get_file.side_effect = get_file
        engine = make_engine(mock_client, mock_output)

        with pytest.raises(UiliciousDownloadError):
            await engine.export_directory_node_to_directory_path("p1", root, tmp_path)
        await engine.drain()

        assert (tmp_path / "a.js").read_text() == "ok"


class TestImportExportProperties:
    """End-to-end properties of import and export against a fake project."""

    @pytest.fixture
    def remote(self):
        """A dict-backed project that rejects existing files."""
        return {}

    @pytest.fixture
    def fake_client(self, remote):
        client = Mock()

        async def put_file(project_id, file_path, content, overwrite):
            if file_path in remote and not overwrite:
                raise UiliciousFileExistsError()
            remote[file_path] = content
            return True

        async def upload_raw_file(project_id, file_path, local_path, overwrite):
            if file_path in remote and not overwrite:
                raise UiliciousFileExistsError()
            remote[file_path] = local_path.read_bytes().decode("latin-1")
            return True

        async def list_files(project_id):
            return [RemoteNode(path=path, type=FILE) for path in remote]

        async def get_file(project_id, path):
            return remote[path]

        client.put_file = AsyncMock(side_effect=put_file)
        client.upload_raw_file = AsyncMock(side_effect=upload_raw_file)
        client.list_files = AsyncMock(side_effect=list_files)
        client.get_file = AsyncMock(side_effect=get_file)
        return client

    @pytest.mark.asyncio
    async def test_hidden_only_folder(self, tmp_path, fake_client, mock_output):
        """Test that a folder of hidden files uploads nothing and succeeds."""
        make_tree(tmp_path, {".a": "x", ".b/c.js": "y"})
        engine = make_engine(fake_client, mock_output)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert stats == {"uploads": 0, "skips": 0, "errors": 0}
        fake_client.put_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_import_skips(
        self, tmp_path, fake_client, mock_output, remote
    ):
        """Test that importing twice without overwrite only skips."""
        make_tree(tmp_path, {"a.js": "1", "sub/b.js": "2", "logo.png": b"p"})
        engine = make_engine(fake_client, mock_output)

        first = await engine.import_folder_contents("p1", tmp_path)
        second = await engine.import_folder_contents("p1", tmp_path)

        assert first == {"uploads": 3, "skips": 0, "errors": 0}
        assert second == {"uploads": 0, "skips": 3, "errors": 0}
        assert sorted(remote) == ["a.js", "logo.png", "sub/b.js"]

    @pytest.mark.asyncio
    async def test_overwrite_replaces(self, tmp_path, fake_client, mock_output, remote):
        remote["a.js"] = "old"
        make_tree(tmp_path, {"a.js": "new"})
        engine = make_engine(fake_client, mock_output, overwrite=True)

        stats = await engine.import_folder_contents("p1", tmp_path)

        assert stats["uploads"] == 1
        assert remote["a.js"] == "new"

    @pytest.mark.asyncio
    async def test_export_then_import_subfolder(
        self, tmp_path, fake_client, mock_output, remote
    ):
        """Test that an exported folder imports back relative to itself."""
        remote["a/b.js"] = "I.goTo('/')"
        out_dir = tmp_path / "out"
        engine = make_engine(fake_client, mock_output)

        root = build_remote_tree(await fake_client.list_files("p1"))
        await engine.export_directory_node_to_directory_path("p1", root, out_dir)
        assert (out_dir / "a" / "b.js").read_text() == "I.goTo('/')"

        remote.clear()
        await engine.import_folder_contents("p2", out_dir / "a")

        assert remote == {"b.js": "I.goTo('/')"}

    @pytest.mark.asyncio
    async def test_media_round_trip(self, tmp_path, fake_client, mock_output, remote):
        """Test that media bytes survive the binary string encoding."""
        payload = bytes(range(256))
        make_tree(tmp_path / "in", {"img/logo.png": payload})
        engine = make_engine(fake_client, mock_output)

        await engine.import_folder_contents("p1", tmp_path / "in")
        await engine.export_test_directory("p1", tmp_path / "out")

        assert (tmp_path / "out" / "img" / "logo.png").read_bytes() == payload
