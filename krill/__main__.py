"""
Main entry point and pager context for krill.
"""
import curses
import locale
import os
import sys

from krill import commands, logger, themes, ui
from krill.document import Document, DocumentRing, View
from krill.errors import IntegrityError, SourceError
from krill.help import HELP_NAME, help_text
from krill.manpage import detect_name
from krill.normalize import set_encoding
from krill.options import parse_options
from krill.refs import CommandOracle, ListingOracle, ReferenceCache, apropos_producer
from krill.search import SearchEngine
from krill.source import MemorySource, open_source, open_stdin, preprocessor_command

DEFAULT_THEME = "krill"


class PagerContext:
    """
    Holds the state of the pager: the ring of open documents, the view
    geometry, the search engine with its reference cache, themes and the
    status line message.
    """
    def __init__(self, stdscr, options, ring: DocumentRing):
        self.stdscr = stdscr
        self.options = options
        self.height, self.width = stdscr.getmaxyx()

        self.view = View(rows=max(1, self.height - 1), cols=max(1, self.width),
                         tab_width=options.tab_width,
                         chop=options.chop_lines,
                         line_numbers=options.line_numbers)
        self.ring = ring

        # References and searching
        if options.load_apropos:
            oracle = ListingOracle(apropos_producer(options.apropos_command))
        else:
            oracle = CommandOracle(options.verify_command)
        self.references = ReferenceCache(oracle, case_sensitive=options.man_case,
                                         verify=not options.no_verify)
        self.engine = SearchEngine(self.references, case_sensitive=options.case_sensitive)

        # Input and status
        self.toggle_pending = False
        self.status_message = ""
        self.recent_commands = []
        self.ui = ui.screen

        # Colors
        self.use_color = not options.no_color and curses.has_colors()
        self.extended_color_support = (self.use_color and curses.can_change_color()
                                       and curses.COLORS >= 256)
        self.color_pairs = themes.ColorPairs(self.extended_color_support)
        self.available_themes = themes.get_builtin_themes()
        self.current_theme = DEFAULT_THEME
        if self.use_color:
            self.apply_theme(options.theme or themes.load_theme_config() or DEFAULT_THEME)

        self.exit_flag = False

    def log_command(self, msg: str):
        """Remember the last few actions and forward them to the log file."""
        self.recent_commands.append(msg)
        if len(self.recent_commands) > 5:
            self.recent_commands = self.recent_commands[-5:]
        logger.log(msg)

    def graceful_exit(self):
        """
        Leave the main loop.  curses.wrapper restores the terminal and run()
        closes the documents.
        """
        logger.log("Pager exited.")
        self.exit_flag = True

    def apply_theme(self, theme_name: str):
        """Apply a color theme by name; unknown names are ignored."""
        if theme_name not in self.available_themes:
            logger.log(f"unknown theme {theme_name}")
            return
        self.current_theme = theme_name
        themes.apply_theme(self.available_themes[theme_name], self.extended_color_support)
        self.color_pairs.reset()

    def next_theme(self) -> str:
        """Switch to the next built-in theme and remember it in theme.conf."""
        if not self.use_color:
            return self.current_theme
        names = list(self.available_themes)
        i = names.index(self.current_theme) if self.current_theme in names else -1
        self.apply_theme(names[(i + 1) % len(names)])
        themes.save_theme_config(self.current_theme)
        return self.current_theme

    def resize(self):
        curses.update_lines_cols()
        self.height, self.width = self.stdscr.getmaxyx()
        commands.resize(self, self.height, self.width)


def open_documents(options, ring: DocumentRing, environ):
    """
    Open every input before the screen is taken over, so unreadable files
    are reported on the terminal.  Returns the output copy file, if any.
    """
    tee = None
    if options.output_file:
        try:
            tee = open(options.output_file, "wb")
        except OSError as e:
            raise SourceError(options.output_file, e.strerror)
    preprocessor = preprocessor_command(environ)
    if options.files:
        # The ring inserts before the current document; add in reverse so
        # the first file ends up current.
        for i, path in reversed(list(enumerate(options.files))):
            source = open_source(path, preprocessor)
            ring.add(Document(path, source, tee=tee if i == 0 else None))
    elif not sys.stdin.isatty():
        doc = Document("", open_stdin(), tee=tee)
        name = detect_name(doc, options.man_case)
        if name:
            doc.name = name
        ring.add(doc)
        # Keys come from the terminal from now on.
        try:
            tty = os.open("/dev/tty", os.O_RDONLY)
        except OSError as e:
            raise SourceError("/dev/tty", e.strerror)
        os.dup2(tty, 0)
        os.close(tty)
    else:
        ring.add(Document(HELP_NAME, MemorySource(HELP_NAME, help_text()), synthetic=True))
    return tee


def main(stdscr, options, ring: DocumentRing):
    if curses.has_colors():
        curses.start_color()
    curses.curs_set(0)
    stdscr.keypad(True)
    curses.mousemask(curses.ALL_MOUSE_EVENTS)
    context = PagerContext(stdscr, options, ring)

    if options.search:
        commands.search(context, options.search, True)

    # Main loop
    while not context.exit_flag:
        context.ui.display(context)
        key = context.stdscr.getch()
        context.status_message = ""
        if key == curses.KEY_RESIZE:
            context.resize()
            continue
        ui.input.handle_key(context, key)


def shutdown(ring: DocumentRing, tee):
    ring.close_all()
    if tee is not None:
        tee.close()


def run():
    """
    Parse the options, open the inputs and start the curses wrapper with
    main().  Fatal errors end the session with a message and status 1.
    """
    options = parse_options(sys.argv[1:], os.environ)
    logger.set_log_file(options.log_file)
    locale.setlocale(locale.LC_ALL, "")
    set_encoding()
    os.environ.setdefault("ESCDELAY", "25")
    ring = DocumentRing()
    tee = None
    try:
        tee = open_documents(options, ring, os.environ)
        curses.wrapper(main, options, ring)
    except (IntegrityError, SourceError) as e:
        logger.log(f"fatal: {e}")
        shutdown(ring, tee)
        print(f"krill: {e}", file=sys.stderr)
        sys.exit(1)
    shutdown(ring, tee)


if __name__ == "__main__":
    run()
