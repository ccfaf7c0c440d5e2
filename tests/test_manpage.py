"""Tests for manual page detection, formatting and reloading."""
from krill import manpage
from krill.document import DocumentRing
from krill.toc import TocNode

from conftest import make_doc

HEADER = b"LS(1)          User Commands          LS(1)\n\nNAME\n"


class TestDetectName:
    def test_header(self):
        assert manpage.detect_name(make_doc(HEADER)) == "ls(1)"

    def test_case_sensitive(self):
        assert manpage.detect_name(make_doc(HEADER), case_sensitive=True) == "LS(1)"

    def test_overstruck_header(self):
        doc = make_doc(b"L\bLS\bS(1)    Title    LS(1)\n")
        assert manpage.detect_name(doc) == "ls(1)"

    def test_plain_text(self):
        assert manpage.detect_name(make_doc(b"hello ls(1) world\n")) is None

    def test_empty(self):
        assert manpage.detect_name(make_doc(b"")) is None


class TestOpenManpage:
    def test_formats_and_adds(self):
        ring = DocumentRing()
        doc, message = manpage.open_manpage(ring, "ls(1)", "echo %s", 24, 80)
        assert message is None
        assert ring.current is doc
        assert doc.manpage
        assert doc.line_at(0).text == b"ls(1)"

    def test_open_page_is_reused(self):
        ring = DocumentRing()
        first, _ = manpage.open_manpage(ring, "ls(1)", "echo %s", 24, 80)
        again, _ = manpage.open_manpage(ring, "ls(1)", "false %s", 24, 80)
        assert again is first
        assert len(ring) == 1

    def test_failing_formatter(self):
        ring = DocumentRing()
        doc, message = manpage.open_manpage(ring, "nosuch(1)", "false %s", 24, 80)
        assert doc is None
        assert message == "No manual entry for nosuch(1)"
        assert len(ring) == 0

    def test_missing_formatter(self):
        ring = DocumentRing()
        doc, message = manpage.open_manpage(ring, "ls(1)", "/nonexistent/formatter %s", 24, 80)
        assert doc is None
        assert message.startswith("ls(1): ")


class TestReload:
    def test_reload_replaces_content(self):
        ring = DocumentRing()
        doc, _ = manpage.open_manpage(ring, "ls(1)", "echo %s", 24, 80)
        doc.needs_reload = True
        assert manpage.reload(doc, "echo reloaded %s", 24, 80)
        assert doc.line_at(0).text == b"reloaded ls(1)"
        assert not doc.needs_reload

    def test_failed_reload_keeps_content(self):
        ring = DocumentRing()
        doc, _ = manpage.open_manpage(ring, "ls(1)", "echo %s", 24, 80)
        assert not manpage.reload(doc, "false %s", 24, 80)
        assert doc.line_at(0).text == b"ls(1)"

    def test_reload_rebuilds_outline(self):
        ring = DocumentRing()
        doc, _ = manpage.open_manpage(ring, "ls(1)", "echo %s", 24, 80)
        doc.build_toc()
        assert doc.toc.nodes == [TocNode(0, 0)]
        assert manpage.reload(doc, "printf 'NAME\\n   Sub\\n%s\\n'", 24, 80)
        assert doc.toc.nodes == [TocNode(0, 0), TocNode(5, 1), TocNode(12, 0)]
        assert doc.toc.level == 0
