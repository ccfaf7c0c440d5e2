"""
Commands for the krill pager.

Every user command is a function acting on the pager context: opening,
switching and closing documents, moving the view, searching, the outline
and the '-' option toggles.  Outcomes the user should know about end up
in context.status_message.
"""
from krill import manpage
from krill.document import NUMBER_GUTTER, Document
from krill.errors import PatternError
from krill.help import HELP_NAME, help_text
from krill.refs import REFERENCE_REGEX
from krill.search import NOT_FOUND, SEARCH_OR_REFS, Mode, reference_name
from krill.source import CommandSource, MemorySource
from krill.toc import END
from krill.wrap import column_offset

FILES_LIST_NAME = "List of open files"
APROPOS_NAME = "Apropos"


###############################################################################
# DOCUMENTS
###############################################################################

def activate(context, doc: Document) -> None:
    """Make doc current, formatting it again if the window changed meanwhile."""
    context.ring.switch(doc)
    if doc.needs_reload:
        reload_document(context, doc)


def reload_document(context, doc: Document) -> None:
    view = context.view
    if manpage.reload(doc, context.options.reload_command, view.rows + 1, view.cols):
        context.log_command(f"reload: {doc.display_name}")
    else:
        doc.needs_reload = False
        context.status_message = f"Could not reformat {doc.display_name}"


def open_manpage(context, name: str) -> None:
    view = context.view
    doc, message = manpage.open_manpage(context.ring, name, context.options.reload_command,
                                        view.rows + 1, view.cols, context.options.man_case)
    if doc is None:
        context.status_message = message
        return
    activate(context, doc)
    context.log_command(f"manpage: {doc.display_name}")


def prompt_manpage(context) -> None:
    name = context.ui.prompt_input(context, "Manual page: ")
    if name:
        open_manpage(context, name)


def visit_reference(context) -> None:
    """Open the manual page the current reference match names."""
    doc = context.ring.current
    match = doc.current_match
    if match is None:
        return
    name = reference_name(doc.line_at(match.start), match)
    open_manpage(context, context.references.key(name))


def show_help(context) -> None:
    doc = context.ring.find(HELP_NAME)
    if doc is None:
        doc = context.ring.add(Document(HELP_NAME, MemorySource(HELP_NAME, help_text()), synthetic=True))
    activate(context, doc)
    context.log_command("h: help")


def show_apropos(context) -> None:
    doc = context.ring.find(APROPOS_NAME)
    if doc is None:
        source = CommandSource(APROPOS_NAME, context.options.apropos_command)
        doc = context.ring.add(Document(APROPOS_NAME, source, synthetic=True))
    activate(context, doc)
    context.log_command("a: apropos")


def files_list(context) -> None:
    """Show the other open documents and switch to the one the user selects."""
    others = context.ring.others()
    if not others:
        context.status_message = "No other files opened."
        return
    text = "".join(f"{doc.display_name}\n" for doc in others)
    listing = Document(FILES_LIST_NAME, MemorySource(FILES_LIST_NAME, text.encode("utf-8")),
                       synthetic=True)
    context.ring.add(listing)
    selected = context.ui.select_line(context, listing)
    context.ring.kill()
    if selected is None:
        return
    for doc in others:
        if doc.display_name == selected:
            activate(context, doc)
            context.log_command(f"B: switch to {selected}")
            return


def kill_document(context) -> None:
    """Close the current document; closing the last one ends the session."""
    if len(context.ring) <= 1:
        context.graceful_exit()
        return
    name = context.ring.current.display_name
    context.ring.kill()
    activate(context, context.ring.current)
    context.log_command(f"c: closed {name}")


def quit_view(context) -> None:
    """q: leave the outline, close the help page, or quit."""
    doc = context.ring.current
    if doc.mode & Mode.TOC:
        doc.mode &= ~Mode.TOC
    elif doc.name == HELP_NAME:
        kill_document(context)
    else:
        context.graceful_exit()


###############################################################################
# MOVING
###############################################################################

def _in_toc(doc) -> bool:
    return bool(doc.mode & Mode.TOC)


def next_page(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.toc.page(context.view.rows)
        if doc.toc.last is not None:
            doc.toc.first = doc.toc.last
            doc.toc.cursor = 0
    else:
        doc.page_down(context.view)


def prev_page(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.toc.step(-context.view.rows)
        doc.toc.cursor = 0
    else:
        doc.page_up(context.view)


def line_forward(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.mode &= ~Mode.HIGHLIGHT
        doc.toc.cursor_down(context.view.rows)
    else:
        doc.line_down(context.view)


def line_back(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.mode &= ~Mode.HIGHLIGHT
        doc.toc.cursor_up(context.view.rows)
    else:
        doc.line_up(context.view)


def goto_start(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.toc.rewind(0)
    else:
        doc.goto_start()


def goto_end(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        doc.toc.rewind(END, context.view.rows)
    else:
        doc.goto_end(context.view)


def shift(context, delta: int) -> None:
    context.view.shift = max(0, context.view.shift + delta)


def enter(context) -> None:
    doc = context.ring.current
    if _in_toc(doc):
        toc_select(context)
    elif doc.mode & Mode.REFS and doc.current_match is not None:
        visit_reference(context)
    else:
        line_forward(context)


###############################################################################
# SEARCHING
###############################################################################

def search(context, pattern: str, forward: bool) -> None:
    """Search for a new pattern; an empty one repeats the previous search."""
    doc = context.ring.current
    engine = context.engine
    if not pattern:
        if engine.pattern is None:
            doc.mode &= ~Mode.HIGHLIGHT
            return
    else:
        try:
            engine.set_pattern(pattern)
        except PatternError as e:
            doc.mode &= ~Mode.HIGHLIGHT
            context.status_message = e.message
            context.log_command(f"bad pattern {pattern!r}: {e.message}")
            return
    repeat_search(context, forward)


def repeat_search(context, forward: bool) -> None:
    doc = context.ring.current
    if context.engine.regex is None:
        return
    if forward:
        found = context.engine.search_next(doc, context.view, Mode.SEARCH)
    else:
        found = context.engine.search_prev(doc, context.view, Mode.SEARCH)
    if not found:
        context.status_message = NOT_FOUND


def search_refs(context, forward: bool) -> None:
    doc = context.ring.current
    if forward:
        found = context.engine.search_next(doc, context.view, Mode.REFS)
    else:
        found = context.engine.search_prev(doc, context.view, Mode.REFS)
    if not found:
        context.status_message = NOT_FOUND


def leave_refs(context) -> None:
    doc = context.ring.current
    doc.mode &= ~(Mode.HIGHLIGHT | SEARCH_OR_REFS)


def highlight_off(context) -> None:
    context.ring.current.mode &= ~Mode.HIGHLIGHT


def flip_align(context) -> None:
    """Align the current match once with the strategy that is not active."""
    doc = context.ring.current
    if doc.current_match is None:
        return
    context.engine.align(doc, context.view, context.engine.strategy.flipped())


###############################################################################
# MOUSE
###############################################################################

def reference_at(context, y: int, x: int):
    """The valid reference drawn at screen cell (y, x), or None."""
    doc = context.ring.current
    view = context.view
    if _in_toc(doc):
        return None
    rows = doc.page(view)
    if not 0 <= y < len(rows):
        return None
    col = x - (NUMBER_GUTTER if view.line_numbers else 0)
    if col < 0:
        return None
    if view.chop:
        col += view.shift
    row = rows[y]
    line = row.line
    offset = column_offset(line.raw, row.start - line.pos, row.end - line.pos, col, view.tab_width)
    if offset is None:
        return None
    pos = line.pos + offset
    validate = context.engine.validator(Mode.REFS)
    for match in context.engine.line_matches(line, REFERENCE_REGEX, validate):
        if match.start <= pos < match.end:
            return match
    return None


def click(context, y: int, x: int, follow: bool = False) -> None:
    """Select the reference under the pointer.  With follow, open it as well."""
    match = reference_at(context, y, x)
    if match is None:
        return
    doc = context.ring.current
    doc.mode = (doc.mode & ~SEARCH_OR_REFS) | Mode.REFS | Mode.HIGHLIGHT
    doc.current_match = match
    if follow:
        visit_reference(context)


###############################################################################
# OUTLINE
###############################################################################

def toggle_toc(context) -> None:
    """Enter the outline, or cycle its level when already there."""
    doc = context.ring.current
    if _in_toc(doc):
        level = doc.toc.cycle_level()
        doc.toc.cursor = 0
        context.log_command(f"T: outline level {level}")
        return
    if doc.toc is None:
        doc.build_toc()
    if not doc.toc.nodes:
        context.status_message = "No outline entries"
        return
    toc = doc.toc
    # Start at the nearest entry at or above the page.
    i = toc.move_to_prev(doc.page_first + 1)
    if i is None:
        i = toc.first_visible()
    toc.first = i
    toc.cursor = 0
    doc.mode |= Mode.TOC
    context.log_command("T: outline")


def toc_select(context) -> None:
    doc = context.ring.current
    doc.page_first = doc.toc.offset_at_cursor(context.view.rows)
    doc.mode &= ~Mode.TOC


###############################################################################
# OPTIONS AND WINDOW
###############################################################################

def process_toggle(context, key: str) -> None:
    """Handle the key typed after '-'."""
    doc = context.ring.current
    view = context.view
    if key == "h":
        if doc.current_match is not None:
            doc.mode ^= Mode.HIGHLIGHT
    elif key == "i":
        context.engine.case_sensitive = not context.engine.case_sensitive
        context.engine.recompile()
        state = "ON" if context.engine.case_sensitive else "OFF"
        context.status_message = f"Case sensitivity turned {state}."
    elif key == "c":
        view.chop = not view.chop
        view.shift = 0
        doc.realign()
        state = "ON" if view.chop else "OFF"
        context.status_message = f"Lines chopping turned {state}."
    elif key == "n":
        view.line_numbers = not view.line_numbers
        doc.realign()
        state = "ON" if view.line_numbers else "OFF"
        context.status_message = f"Line numbers turned {state}."
    elif key == "V":
        context.references.verify = not context.references.verify
        state = "ON" if context.references.verify else "OFF"
        context.status_message = f"Verification of references turned {state}."
    elif key == "T":
        context.engine.strategy = context.engine.strategy.flipped()
        context.status_message = f"Matches aligned to {context.engine.strategy.value}."
    elif key == "t":
        name = context.next_theme()
        context.status_message = f"Theme: {name}"
    else:
        context.status_message = f"Unknown option -{key}"
        return
    context.log_command(f"-{key}: toggle")


def resize(context, rows: int, cols: int) -> None:
    """Adapt to a new window size; manual pages are formatted again."""
    view = context.view
    view.rows = max(1, rows - 1)
    view.cols = max(1, cols)
    current = context.ring.current
    for doc in context.ring:
        if doc.manpage:
            doc.needs_reload = True
        else:
            doc.realign()
    if current is not None and current.needs_reload:
        reload_document(context, current)
    context.log_command(f"resize: {rows}x{cols}")
