"""
Input handling for the krill pager.

Processes key events for the text view, the outline and the '-' toggle
prefix, and calls the matching command.
"""
import curses

from krill import commands, logger
from krill.search import Mode

KEY_ESC = 27
KEY_TAB = 9
KEY_CTRL_L = 12
ENTER_KEYS = (curses.KEY_ENTER, 10, 13)

NEXT_PAGE_KEYS = (ord(' '), ord('f'), curses.KEY_NPAGE)
PREV_PAGE_KEYS = (ord('b'), curses.KEY_PPAGE)
LINE_FORWARD_KEYS = (ord('e'), ord('j'), curses.KEY_DOWN)
LINE_BACK_KEYS = (ord('y'), ord('k'), curses.KEY_UP)
START_KEYS = (ord('g'), ord('<'), curses.KEY_HOME)
END_KEYS = (ord('G'), ord('>'), curses.KEY_END)

WHEEL_UP = curses.BUTTON4_PRESSED
# Not every curses build reports a fifth button.
WHEEL_DOWN = getattr(curses, "BUTTON5_PRESSED", 0)


def handle_key(context, key: int):
    """Dispatch one key press according to the current document's mode."""
    if context.toggle_pending:
        handle_toggle(context, key)
        return
    doc = context.ring.current
    if doc.mode & Mode.REFS and key not in (KEY_TAB, curses.KEY_BTAB) + ENTER_KEYS:
        commands.leave_refs(context)
    if doc.mode & Mode.TOC and handle_toc_mode(context, key):
        return
    handle_normal_mode(context, key)


def handle_toggle(context, key: int):
    """Handle the key following '-'."""
    context.toggle_pending = False
    if key == KEY_ESC:
        return
    if 32 <= key < 127:
        commands.process_toggle(context, chr(key))
    else:
        context.status_message = "Unknown option"


def handle_toc_mode(context, key: int) -> bool:
    """Keys that only mean something in the outline.  Returns True if handled."""
    if key in ENTER_KEYS:
        commands.toc_select(context)
        context.log_command("ENTER: leave outline at entry")
        return True
    if key == ord('q'):
        commands.quit_view(context)
        context.log_command("q: leave outline")
        return True
    return False


def handle_normal_mode(context, key: int):
    """Handle a key press in the text view (and keys the outline shares)."""
    if key in NEXT_PAGE_KEYS:
        commands.next_page(context)
        context.log_command("next page")
        return
    if key in PREV_PAGE_KEYS:
        commands.prev_page(context)
        context.log_command("previous page")
        return
    if key in LINE_FORWARD_KEYS:
        commands.line_forward(context)
        context.log_command("line forward")
        return
    if key in ENTER_KEYS:
        commands.enter(context)
        context.log_command("ENTER")
        return
    if key in LINE_BACK_KEYS:
        commands.line_back(context)
        context.log_command("line back")
        return
    if key in START_KEYS:
        commands.goto_start(context)
        context.log_command("start of document")
        return
    if key in END_KEYS:
        commands.goto_end(context)
        context.log_command("end of document")
        return

    if key in (curses.KEY_LEFT, curses.KEY_RIGHT):
        if context.view.chop:
            half = max(1, context.view.text_cols // 2)
            commands.shift(context, half if key == curses.KEY_RIGHT else -half)
            context.log_command(f"shift {'right' if key == curses.KEY_RIGHT else 'left'}")
        return
    if key == curses.KEY_MOUSE:
        handle_mouse(context)
        return

    # Searching
    if key in (ord('/'), ord('?')):
        forward = key == ord('/')
        pattern = context.ui.prompt_input(context, chr(key))
        if pattern is not None:
            commands.search(context, pattern, forward)
            context.log_command(f"{chr(key)}: search {pattern!r}")
        return
    if key == ord('n'):
        commands.repeat_search(context, True)
        context.log_command("n: next match")
        return
    if key == ord('p'):
        commands.repeat_search(context, False)
        context.log_command("p: previous match")
        return
    if key == KEY_TAB:
        commands.search_refs(context, True)
        context.log_command("TAB: next reference")
        return
    if key == curses.KEY_BTAB:
        commands.search_refs(context, False)
        context.log_command("BTAB: previous reference")
        return
    if key == KEY_ESC:
        commands.highlight_off(context)
        context.log_command("ESC: highlight off")
        return
    if key == KEY_CTRL_L:
        commands.flip_align(context)
        context.log_command("^L: flip alignment")
        return

    # Outline and toggles
    if key == ord('T'):
        commands.toggle_toc(context)
        return
    if key == ord('-'):
        context.toggle_pending = True
        context.status_message = "-"
        return

    # Documents
    if key == ord('B'):
        commands.files_list(context)
        return
    if key == ord('a'):
        commands.show_apropos(context)
        return
    if key == ord('m'):
        commands.prompt_manpage(context)
        return
    if key == ord('c'):
        commands.kill_document(context)
        return
    if key == ord('h'):
        commands.show_help(context)
        return
    if key == ord('q'):
        commands.quit_view(context)
        return


def handle_mouse(context):
    """Read the pending mouse event and act on it."""
    try:
        _, x, y, _, bstate = curses.getmouse()
    except curses.error:
        logger.log("mouse event without data")
        return
    handle_mouse_event(context, y, x, bstate)


def handle_mouse_event(context, y: int, x: int, bstate: int):
    """The wheel scrolls one line; a click selects a reference, a double click opens it."""
    if bstate & WHEEL_UP:
        commands.line_back(context)
        context.log_command("wheel up")
    elif bstate & WHEEL_DOWN:
        commands.line_forward(context)
        context.log_command("wheel down")
    elif bstate & curses.BUTTON1_DOUBLE_CLICKED:
        commands.click(context, y, x, follow=True)
        context.log_command(f"double click at {y},{x}")
    elif bstate & curses.BUTTON1_CLICKED:
        commands.click(context, y, x)
        context.log_command(f"click at {y},{x}")
