"""
krill/ui/screen.py

All drawing for the krill pager: the page of text rows (or the outline),
match highlighting, line numbers, the status line, the bottom-line prompt
and the line selector used by the list of open files.
"""
import curses

from wcwidth import wcwidth

from krill import logger, themes
from krill.attributes import decode_line
from krill.document import NUMBER_GUTTER, Row
from krill.search import Mode
from krill.wrap import caret, char_cells, is_caret, segments

###############################################################################
# ATTRIBUTES
###############################################################################


def color(context, pair: int) -> int:
    return curses.color_pair(pair) if context.use_color else 0


def curses_attr(context, attr) -> int:
    """Translate decoded text attributes into a curses attribute value."""
    value = 0
    if attr.bold:
        value |= curses.A_BOLD
    if attr.dim:
        value |= curses.A_DIM
    if attr.italic:
        value |= curses.A_ITALIC
    if attr.underline:
        value |= curses.A_UNDERLINE
    if attr.blink:
        value |= curses.A_BLINK
    if attr.reverse:
        value |= curses.A_REVERSE
    if attr.invisible:
        value |= curses.A_INVIS
    if not context.use_color:
        return value
    if attr.fg is not None or attr.bg is not None:
        pair = context.color_pairs.pair_for(attr.fg, attr.bg)
        if pair is None:
            context.status_message = "Out of color pairs"
            pair = themes.PAIR_NORMAL
        return value | curses.color_pair(pair)
    if attr.reverse:
        return value | curses.color_pair(themes.PAIR_REVERSE)
    if attr.bold:
        return value | curses.color_pair(themes.PAIR_BOLD)
    if attr.underline:
        return value | curses.color_pair(themes.PAIR_UNDERLINE)
    return value | curses.color_pair(themes.PAIR_NORMAL)


def match_attr(context, offset: int, matches, current) -> int:
    """Attribute override for a cell inside a match, or None."""
    for m in matches:
        if m.start <= offset < m.end:
            if current is not None and m.start == current.start:
                return curses.A_REVERSE | color(context, themes.PAIR_NORMAL)
            if not context.use_color:
                return curses.A_BOLD | curses.A_UNDERLINE
            return curses.color_pair(themes.PAIR_MATCH)
    return None


###############################################################################
# TEXT ROWS
###############################################################################

def draw_row(context, y: int, x0: int, width: int, row, cells, matches, current, extra=0):
    """
    Draw the cells of row (raw span [row.start, row.end)) at line y.  In
    chop mode the first view.shift columns are skipped.
    """
    stdscr = context.stdscr
    tab_width = context.view.tab_width
    skip = context.view.shift if context.view.chop else 0
    col = 0
    for cell in cells:
        if cell.offset < row.start:
            continue
        if cell.offset >= row.end or cell.char == "\n":
            break
        ch = cell.char
        w = char_cells(ch, col, tab_width)
        if ch == "\t":
            text = " " * w
        elif is_caret(ch):
            text = caret(ch)
        elif wcwidth(ch) < 0:
            text = "?"
        else:
            text = ch
        if col + w > skip + width:
            break
        if col >= skip:
            attr = match_attr(context, cell.offset, matches, current)
            if attr is None:
                attr = curses_attr(context, cell.attr)
            logger.safe_addstr(stdscr, y, x0 + col - skip, text, attr | extra)
        col += w


def draw_page(context, doc):
    view = context.view
    rows = doc.page(view)
    lines = []
    for row in rows:
        if not lines or lines[-1] is not row.line:
            lines.append(row.line)
    matches = context.engine.matches_on_page(doc, view, lines)
    current = doc.current_match if doc.mode & Mode.HIGHLIGHT else None
    x0 = NUMBER_GUTTER if view.line_numbers else 0
    decoded = {}
    for y, row in enumerate(rows):
        cells = decoded.get(row.line.pos)
        if cells is None:
            cells = decode_line(row.line.raw)
            decoded[row.line.pos] = cells
        if view.line_numbers and row.first:
            number = f"{doc.line_number_of(row.start):>{NUMBER_GUTTER - 1}} "
            logger.safe_addstr(context.stdscr, y, 0, number, color(context, themes.PAIR_BOLD))
        draw_row(context, y, x0, view.text_cols, row, cells, matches, current)
    for y in range(len(rows), view.rows):
        logger.safe_addch(context.stdscr, y, 0, "~", color(context, themes.PAIR_BOLD))


def draw_toc(context, doc):
    """Draw the visible outline entries, one row each, with the cursor row reversed."""
    view = context.view
    toc = doc.toc
    entries = toc.page(view.rows)
    lines = [doc.line_at(toc.nodes[i].pos) for i in entries]
    matches = context.engine.matches_on_page(doc, view, lines)
    current = doc.current_match if doc.mode & Mode.HIGHLIGHT else None
    for y, line in enumerate(lines):
        start, end = segments(line.raw, view.cols, view.tab_width, view.chop)[0]
        row = Row(line, line.pos + start, line.pos + end)
        extra = curses.A_REVERSE if y == toc.cursor else 0
        if extra:
            logger.safe_addstr(context.stdscr, y, 0, " " * view.cols,
                               color(context, themes.PAIR_NORMAL) | extra)
        draw_row(context, y, 0, view.cols, row, decode_line(line.raw), matches, current, extra)


###############################################################################
# STATUS LINE
###############################################################################

def status_text(context) -> str:
    doc = context.ring.current
    parts = [doc.display_name]
    if len(context.ring) > 1:
        parts.append(f"[{context.ring.index + 1}/{len(context.ring)}]")
    if doc.mode & Mode.TOC:
        parts.append(f"TOC{doc.toc.level}")
    else:
        parts.append(f"line {doc.line_number_of(doc.page_first)}")
        if doc.size:
            parts.append(f"{min(100, doc.page_last * 100 // doc.size)}%")
    if doc.mode & Mode.REFS:
        parts.append("REFS")
    elif doc.mode & Mode.SEARCH:
        parts.append("SEARCH")
    text = " ".join(parts)
    if context.status_message:
        text += "  " + context.status_message
    return text


def draw_status_bar(context):
    y = context.height - 1
    text = f" {status_text(context)}"
    width = max(0, context.width - 1)
    logger.safe_addstr(context.stdscr, y, 0, text[:width].ljust(width),
                       color(context, themes.PAIR_STATUS) | curses.A_BOLD)


def display(context):
    """Re-draw the whole screen for the current document."""
    context.height, context.width = context.stdscr.getmaxyx()
    doc = context.ring.current
    context.stdscr.bkgdset(" ", color(context, themes.PAIR_NORMAL))
    context.stdscr.erase()
    if doc.mode & Mode.TOC:
        draw_toc(context, doc)
    else:
        draw_page(context, doc)
    draw_status_bar(context)
    context.stdscr.refresh()


###############################################################################
# PROMPT AND SELECTION
###############################################################################

def prompt_input(context, prompt: str):
    """
    Read a line of input on the bottom line.
    Returns the entered string, or None if ESC canceled it.
    """
    y = context.height - 1
    typed = ""
    curses.curs_set(1)
    try:
        while True:
            width = max(0, context.width - 1)
            line = f"{prompt}{typed}"[-width:] if width else ""
            logger.safe_addstr(context.stdscr, y, 0, line.ljust(width), color(context, themes.PAIR_NORMAL))
            try:
                context.stdscr.move(y, min(len(line), width))
            except curses.error:
                pass
            context.stdscr.refresh()
            key = context.stdscr.get_wch()
            if key in (curses.KEY_ENTER, "\n", "\r"):
                return typed
            elif key == "\x1b":
                return None
            elif key in (curses.KEY_BACKSPACE, "\b", "\x7f"):
                if not typed:
                    return None
                typed = typed[:-1]
            elif key == curses.KEY_RESIZE:
                context.height, context.width = context.stdscr.getmaxyx()
                y = context.height - 1
            elif isinstance(key, str) and key.isprintable():
                typed += key
    finally:
        curses.curs_set(0)


def select_line(context, doc):
    """
    Let the user pick one line of doc with the cursor keys.
    Returns the line's text, or None if canceled with q or ESC.
    """
    items = [line.text.decode("utf-8", "replace") for line in doc.lines_from(0)]
    if not items:
        return None
    selected = 0
    top = 0
    while True:
        context.height, context.width = context.stdscr.getmaxyx()
        rows = max(1, context.height - 1)
        if selected < top:
            top = selected
        elif selected >= top + rows:
            top = selected - rows + 1
        context.stdscr.erase()
        for y, label in enumerate(items[top:top + rows]):
            attr = color(context, themes.PAIR_NORMAL)
            if top + y == selected:
                attr = color(context, themes.PAIR_REVERSE) | curses.A_REVERSE | curses.A_BOLD
            logger.safe_addstr(context.stdscr, y, 0, label[:context.width - 1].ljust(context.width - 1), attr)
        title = f" {doc.display_name}  (ENTER selects, q cancels)"
        logger.safe_addstr(context.stdscr, context.height - 1, 0,
                           title[:context.width - 1].ljust(context.width - 1),
                           color(context, themes.PAIR_STATUS) | curses.A_BOLD)
        context.stdscr.refresh()
        key = context.stdscr.getch()
        if key in (curses.KEY_UP, ord("k"), ord("y")):
            selected = (selected - 1) % len(items)
        elif key in (curses.KEY_DOWN, ord("j"), ord("e")):
            selected = (selected + 1) % len(items)
        elif key in (curses.KEY_ENTER, 10, 13):
            return items[selected]
        elif key in (27, ord("q")):
            return None
