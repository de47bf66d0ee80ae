import io
from pathlib import Path

from pixprint.files import expand_paths, read_file_list


class TestReadFileList:
    def test_reads_lines(self):
        stream = io.StringIO("/a.png\n/b c.png\r\n\n   \n/d.png")
        assert read_file_list(stream) == [Path("/a.png"), Path("/b c.png"), Path("/d.png")]

    def test_empty_stream(self):
        assert read_file_list(io.StringIO("")) == []


class TestExpandPaths:
    def test_files_kept_in_order(self, tmp_path):
        b = tmp_path / "b.png"
        a = tmp_path / "a.png"
        assert expand_paths([b, a]) == [b, a]

    def test_directory_expanded_sorted(self, tmp_path):
        for name in ["c.png", "a.png", "b.png"]:
            (tmp_path / name).write_bytes(b"")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "d.png").write_bytes(b"")

        assert expand_paths([tmp_path]) == [tmp_path / "a.png", tmp_path / "b.png", tmp_path / "c.png"]

    def test_recursive(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "d.png").write_bytes(b"")

        assert expand_paths([tmp_path], recursive=True) == [tmp_path / "a.png", tmp_path / "sub" / "d.png"]
