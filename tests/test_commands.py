"""Tests for pager commands, run against a context without a screen."""
import curses
from types import SimpleNamespace

import pytest

from krill import commands
from krill.document import Document, DocumentRing, View
from krill.help import HELP_NAME
from krill.refs import ReferenceCache
from krill.search import NOT_FOUND, Match, Mode, SearchEngine, Strategy
from krill.source import MemorySource
from krill.ui.input import WHEEL_DOWN, WHEEL_UP, handle_key, handle_mouse_event

from conftest import CountingOracle, make_doc
from test_toc import MANPAGE


class FakeUI:
    """Stands in for krill.ui.screen: answers prompts with canned replies."""

    def __init__(self, reply=None):
        self.reply = reply
        self.prompts = []

    def prompt_input(self, context, prompt):
        self.prompts.append(prompt)
        return self.reply

    def select_line(self, context, doc):
        self.listing = [line.text.decode() for line in doc.lines_from(0)]
        return self.reply


class FakeContext:
    def __init__(self, *docs, reply=None):
        self.ring = DocumentRing()
        for doc in reversed(docs):
            self.ring.add(doc)
        self.view = View(rows=5, cols=80)
        self.references = ReferenceCache(CountingOracle({"ls(1)"}))
        self.engine = SearchEngine(self.references)
        self.options = SimpleNamespace(reload_command="echo %s", man_case=False,
                                       apropos_command="printf 'ls (1) - list\\n'")
        self.ui = FakeUI(reply)
        self.status_message = ""
        self.recent_commands = []
        self.exit_flag = False
        self.theme = "krill"
        self.toggle_pending = False

    def log_command(self, msg):
        self.recent_commands.append(msg)

    def graceful_exit(self):
        self.exit_flag = True

    def next_theme(self):
        self.theme = "other"
        return self.theme


def numbered():
    return make_doc(b"".join(b"line%02d\n" % i for i in range(20)), name="numbers")


class TestSearchCommands:
    def test_search_finds_and_centers(self):
        context = FakeContext(numbered())
        commands.search(context, "line05", True)
        doc = context.ring.current
        assert doc.current_match == Match(35, 41)
        assert doc.mode == Mode.SEARCH | Mode.HIGHLIGHT
        assert doc.page_first == 21

    def test_repeat_reports_not_found(self):
        context = FakeContext(numbered())
        commands.search(context, "line05", True)
        commands.repeat_search(context, True)
        assert context.status_message == NOT_FOUND
        assert context.ring.current.current_match == Match(35, 41)

    def test_bad_pattern(self):
        context = FakeContext(numbered())
        commands.search(context, "(", True)
        assert context.status_message
        assert not context.ring.current.mode & Mode.HIGHLIGHT
        assert context.engine.pattern is None

    def test_empty_pattern_without_previous(self):
        context = FakeContext(numbered())
        context.ring.current.mode |= Mode.HIGHLIGHT
        commands.search(context, "", True)
        assert not context.ring.current.mode & Mode.HIGHLIGHT
        assert context.status_message == ""

    def test_empty_pattern_repeats(self):
        context = FakeContext(numbered())
        commands.search(context, "line1", True)
        first = context.ring.current.current_match
        commands.search(context, "", True)
        assert context.ring.current.current_match.start > first.start

    def test_reference_search_and_leave(self):
        doc = make_doc(b"see ls(1) and cat(1)\n")
        context = FakeContext(doc)
        commands.search_refs(context, True)
        assert doc.current_match == Match(4, 9)
        assert doc.mode & Mode.REFS
        commands.search_refs(context, True)
        assert context.status_message == NOT_FOUND
        commands.leave_refs(context)
        assert not doc.mode & (Mode.REFS | Mode.HIGHLIGHT)

    def test_flip_align_uses_other_strategy(self):
        context = FakeContext(numbered())
        commands.search(context, "line05", True)
        commands.flip_align(context)
        assert context.ring.current.page_first == 35
        assert context.engine.strategy is Strategy.CONTEXT


class TestMovingCommands:
    def test_enter_moves_one_line(self):
        context = FakeContext(numbered())
        commands.enter(context)
        assert context.ring.current.page_first == 7

    def test_pages(self):
        context = FakeContext(numbered())
        commands.next_page(context)
        assert context.ring.current.page_first == 35
        commands.prev_page(context)
        assert context.ring.current.page_first == 0

    def test_start_and_end(self):
        context = FakeContext(numbered())
        commands.goto_end(context)
        assert context.ring.current.page_first == 105
        commands.goto_start(context)
        assert context.ring.current.page_first == 0

    def test_shift_never_negative(self):
        context = FakeContext(numbered())
        commands.shift(context, 10)
        commands.shift(context, -40)
        assert context.view.shift == 0


class TestKeyDispatch:
    def test_movement_keys_are_logged(self):
        context = FakeContext(numbered())
        handle_key(context, ord(" "))
        assert context.ring.current.page_first == 35
        handle_key(context, curses.KEY_HOME)
        handle_key(context, ord("j"))
        assert context.ring.current.page_first == 7
        assert context.recent_commands == ["next page", "start of document", "line forward"]

    def test_shift_logged_only_when_chopping(self):
        context = FakeContext(numbered())
        handle_key(context, curses.KEY_RIGHT)
        assert context.recent_commands == []
        context.view.chop = True
        handle_key(context, curses.KEY_RIGHT)
        assert context.view.shift == 40
        assert context.recent_commands == ["shift right"]


class TestMouse:
    def test_click_selects_reference(self):
        doc = make_doc(b"see ls(1) now\n")
        context = FakeContext(doc)
        commands.click(context, 0, 5)
        assert doc.current_match == Match(4, 9)
        assert doc.mode == Mode.REFS | Mode.HIGHLIGHT

    def test_click_outside_reference(self):
        doc = make_doc(b"see ls(1) now\n")
        context = FakeContext(doc)
        commands.click(context, 0, 1)
        commands.click(context, 0, 11)
        commands.click(context, 3, 5)
        assert doc.current_match is None
        assert doc.mode == Mode.INITIAL

    def test_unknown_reference_is_ignored(self):
        context = FakeContext(make_doc(b"see cat(1)\n"))
        assert commands.reference_at(context, 0, 5) is None

    def test_overstruck_reference(self):
        context = FakeContext(make_doc(b"see l\bls\bs(1)\n"))
        assert commands.reference_at(context, 0, 5) == Match(4, 13)

    def test_gutter_and_shift(self):
        context = FakeContext(make_doc(b"xxxxxxxxxx ls(1)\n"))
        context.view.line_numbers = True
        assert commands.reference_at(context, 0, 3) is None
        assert commands.reference_at(context, 0, 19) == Match(11, 16)
        context.view.line_numbers = False
        context.view.chop = True
        context.view.shift = 10
        assert commands.reference_at(context, 0, 1) == Match(11, 16)

    def test_double_click_opens_reference(self):
        context = FakeContext(make_doc(b"see ls(1)\n"))
        handle_mouse_event(context, 0, 6, curses.BUTTON1_DOUBLE_CLICKED)
        assert context.ring.current.name == "ls(1)"
        assert context.recent_commands[-1] == "double click at 0,6"

    def test_wheel_up_scrolls_one_line(self):
        context = FakeContext(numbered())
        context.ring.current.page_first = 14
        handle_mouse_event(context, 0, 0, WHEEL_UP)
        assert context.ring.current.page_first == 7
        assert context.recent_commands == ["wheel up"]

    @pytest.mark.skipif(not WHEEL_DOWN, reason="curses reports no fifth button")
    def test_wheel_down_scrolls_one_line(self):
        context = FakeContext(numbered())
        handle_mouse_event(context, 0, 0, WHEEL_DOWN)
        assert context.ring.current.page_first == 7
        assert context.recent_commands == ["wheel down"]


class TestOutlineCommands:
    def test_enter_outline_and_select(self):
        doc = make_doc(MANPAGE)
        context = FakeContext(doc)
        commands.toggle_toc(context)
        assert doc.mode & Mode.TOC
        assert doc.toc.level == 0
        commands.line_forward(context)
        commands.enter(context)
        assert not doc.mode & Mode.TOC
        assert doc.page_first == 41

    def test_toggle_again_cycles_level(self):
        doc = make_doc(MANPAGE)
        context = FakeContext(doc)
        commands.toggle_toc(context)
        commands.toggle_toc(context)
        assert doc.toc.level == 1
        assert doc.mode & Mode.TOC

    def test_no_entries(self):
        doc = make_doc(b"    indented\n    only\n")
        context = FakeContext(doc)
        commands.toggle_toc(context)
        assert context.status_message == "No outline entries"
        assert not doc.mode & Mode.TOC

    def test_quit_leaves_outline(self):
        doc = make_doc(MANPAGE)
        context = FakeContext(doc)
        commands.toggle_toc(context)
        commands.quit_view(context)
        assert not doc.mode & Mode.TOC
        assert not context.exit_flag


class TestDocumentCommands:
    def test_files_list_alone(self):
        context = FakeContext(numbered())
        commands.files_list(context)
        assert context.status_message == "No other files opened."

    def test_files_list_switches(self):
        a = make_doc(b"a\n", name="a")
        b = make_doc(b"b\n", name="b")
        context = FakeContext(a, b, reply="b")
        assert context.ring.current is a
        commands.files_list(context)
        assert context.ui.listing == ["b"]
        assert context.ring.current is b
        assert len(context.ring) == 2

    def test_files_list_canceled(self):
        a = make_doc(b"a\n", name="a")
        b = make_doc(b"b\n", name="b")
        context = FakeContext(a, b)
        commands.files_list(context)
        assert context.ring.current is a
        assert context.ring.find(commands.FILES_LIST_NAME) is None

    def test_kill_last_document_exits(self):
        context = FakeContext(numbered())
        commands.kill_document(context)
        assert context.exit_flag

    def test_kill_document(self):
        a = make_doc(b"a\n", name="a")
        b = make_doc(b"b\n", name="b")
        context = FakeContext(a, b)
        commands.kill_document(context)
        assert a.source.closed
        assert list(context.ring) == [b]
        assert not context.exit_flag

    def test_help_is_reused_and_closed_by_q(self):
        context = FakeContext(numbered())
        commands.show_help(context)
        help_doc = context.ring.current
        assert help_doc.name == HELP_NAME
        commands.goto_start(context)
        commands.show_help(context)
        assert len(context.ring) == 2
        commands.quit_view(context)
        assert context.ring.current.name == "numbers"
        assert not context.exit_flag

    def test_quit(self):
        context = FakeContext(numbered())
        commands.quit_view(context)
        assert context.exit_flag

    def test_apropos(self):
        context = FakeContext(numbered())
        commands.show_apropos(context)
        doc = context.ring.current
        assert doc.name == commands.APROPOS_NAME
        assert doc.line_at(0).text == b"ls (1) - list"

    def test_manpage_prompt(self):
        context = FakeContext(numbered(), reply="ls(1)")
        commands.prompt_manpage(context)
        assert context.ui.prompts == ["Manual page: "]
        assert context.ring.current.name == "ls(1)"

    def test_manpage_prompt_canceled(self):
        context = FakeContext(numbered())
        commands.prompt_manpage(context)
        assert len(context.ring) == 1

    def test_visit_reference(self):
        doc = make_doc(b"see ls(1)\n")
        context = FakeContext(doc)
        commands.search_refs(context, True)
        commands.enter(context)
        assert context.ring.current.name == "ls(1)"
        assert context.ring.current.line_at(0).text == b"ls(1)"


class TestToggles:
    @pytest.mark.parametrize("key, message", [
        ("c", "Lines chopping turned ON."),
        ("n", "Line numbers turned ON."),
        ("i", "Case sensitivity turned ON."),
        ("V", "Verification of references turned OFF."),
        ("T", "Matches aligned to top."),
        ("t", "Theme: other"),
        ("x", "Unknown option -x"),
    ])
    def test_messages(self, key, message):
        context = FakeContext(numbered())
        commands.process_toggle(context, key)
        assert context.status_message == message

    def test_highlight_needs_a_match(self):
        context = FakeContext(numbered())
        commands.process_toggle(context, "h")
        assert not context.ring.current.mode & Mode.HIGHLIGHT
        commands.search(context, "line05", True)
        commands.process_toggle(context, "h")
        assert not context.ring.current.mode & Mode.HIGHLIGHT
        commands.process_toggle(context, "h")
        assert context.ring.current.mode & Mode.HIGHLIGHT


class TestResize:
    def test_plain_documents_realign(self):
        doc = numbered()
        context = FakeContext(doc)
        doc.page_first = 10
        commands.resize(context, 11, 40)
        assert (context.view.rows, context.view.cols) == (10, 40)
        assert doc.page_first == 7

    def test_manpages_are_marked(self):
        other = Document("other(1)", MemorySource("other(1)", b"x\n"))
        other.manpage = True
        context = FakeContext(numbered(), other)
        commands.resize(context, 11, 40)
        assert other.needs_reload
        commands.activate(context, other)
        assert not other.needs_reload
        assert other.line_at(0).text == b"other(1)"
