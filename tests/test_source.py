"""Tests for byte sources and input preprocessing."""
import os

import pytest

from krill.errors import SourceError
from krill.source import (CommandSource, FdSource, FileSource, MemorySource, formatter_argv,
                          open_source, preprocessor_command)


def drain(source) -> bytes:
    out = b""
    chunk = source.read(4096)
    while chunk:
        out += chunk
        chunk = source.read(4096)
    return out


class TestPreprocessorCommand:
    def test_pipe_form(self):
        assert preprocessor_command({"LESSOPEN": "|lesspipe %s"}) == "lesspipe %s"

    def test_krill_open_wins(self):
        environ = {"LESSOPEN": "|lesspipe %s", "KRILL_OPEN": "| zcat -f %s"}
        assert preprocessor_command(environ) == "zcat -f %s"

    @pytest.mark.parametrize("value", ["lesspipe %s", "|", ""])
    def test_unusable(self, value):
        assert preprocessor_command({"LESSOPEN": value}) is None

    def test_unset(self):
        assert preprocessor_command({}) is None


class TestFormatterArgv:
    def test_substitutes_name(self):
        assert formatter_argv("man %s", "ls(1)") == ["man", "ls(1)"]

    def test_quoted_words(self):
        assert formatter_argv("man -P 'cat -v' %s", "x") == ["man", "-P", "cat -v", "x"]


class TestSources:
    def test_memory_source(self):
        source = MemorySource("m", b"abcdef", blksize=4)
        assert source.size == 6
        assert source.read(4) == b"abcd"
        assert source.read(4) == b"ef"
        assert source.read(4) == b""

    def test_file_source(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello\n")
        source = FileSource(str(path))
        assert source.size == 6
        assert drain(source) == b"hello\n"
        source.close()
        assert source.closed

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError) as info:
            FileSource(str(tmp_path / "missing"))
        assert info.value.name.endswith("missing")

    def test_directory(self, tmp_path):
        with pytest.raises(SourceError) as info:
            FileSource(str(tmp_path))
        assert info.value.reason == "is a directory"

    def test_pipe_has_no_size(self):
        r, w = os.pipe()
        os.write(w, b"piped\n")
        os.close(w)
        source = FdSource("pipe", r)
        assert source.size is None
        assert drain(source) == b"piped\n"
        source.close()

    def test_latch_size_only_once(self):
        source = MemorySource("m", b"")
        source.size = None
        source.latch_size(3)
        source.latch_size(5)
        assert source.size == 3

    def test_command_source(self):
        source = CommandSource("echo", "echo hi")
        assert drain(source) == b"hi\n"
        source.close()
        assert source.process.returncode == 0


class TestOpenSource:
    def test_without_preprocessor(self, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_bytes(b"plain\n")
        source = open_source(str(path))
        assert isinstance(source, FileSource)
        source.close()

    def test_preprocessor_output_is_used(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_bytes(b"abc\n")
        source = open_source(str(path), "tr a-z A-Z < %s")
        assert isinstance(source, CommandSource)
        assert drain(source) == b"ABC\n"
        source.close()

    def test_silent_preprocessor_falls_back(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_bytes(b"abc\n")
        source = open_source(str(path), "true %s")
        assert isinstance(source, FileSource)
        assert drain(source) == b"abc\n"
        source.close()

    def test_path_is_quoted(self, tmp_path):
        path = tmp_path / "it's here.txt"
        path.write_bytes(b"quoted\n")
        source = open_source(str(path), "cat %s")
        assert drain(source) == b"quoted\n"
        source.close()
