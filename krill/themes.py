"""
themes.py

Built-in krill color themes, theme persistence, and the allocator for the
color pairs that SGR colored text needs.
"""
import curses
import os

from krill import logger

THEME_CONFIG_PATH = "~/krill/config/themes/theme.conf"

# Custom color numbers used when the terminal can redefine colors.
COLOR_BG = 16
COLOR_FG = 17
COLOR_BOLD = 18
COLOR_UNDERLINE = 19
COLOR_STATUS = 20
COLOR_MATCH = 21
COLOR_REVERSE = 22

PAIR_NORMAL = 1
PAIR_BOLD = 2
PAIR_UNDERLINE = 3
PAIR_REVERSE = 4
PAIR_STATUS = 5
PAIR_MATCH = 6
FIRST_DYNAMIC_PAIR = 16


def get_builtin_themes():
    """
    Returns a dict mapping built-in theme names to their color definitions.
    """
    return {
        "boring": {
            "bg": (40, 42, 54),
            "fg": (248, 248, 242),
            "bold": (139, 233, 253),
            "underline": (80, 250, 123),
            "reverse": (255, 121, 198),
            "status": (68, 71, 90),
            "match": (241, 250, 140),
        },
        "krill": {
            "bg": (30, 30, 30),
            "fg": (250, 240, 230),
            "bold": (255, 165, 125),
            "underline": (130, 200, 190),
            "reverse": (200, 90, 110),
            "status": (80, 60, 50),
            "match": (255, 215, 120),
        },
        "catpuccin": {
            "bg": (30, 30, 46),
            "fg": (205, 214, 244),
            "bold": (137, 180, 250),
            "underline": (148, 226, 213),
            "reverse": (203, 166, 247),
            "status": (69, 71, 90),
            "match": (249, 226, 175),
        },
    }


def load_theme_config():
    """Return the theme name saved in theme.conf, or None."""
    config_path = os.path.expanduser(THEME_CONFIG_PATH)
    if not os.path.isfile(config_path):
        return None
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            for line in f:
                if line.startswith("theme="):
                    name = line.split("=", 1)[1].strip()
                    if name:
                        return name
    except OSError as e:
        logger.log(f"cannot read {config_path}: {e}")
    return None


def save_theme_config(name: str) -> None:
    """Save the theme name to theme.conf, creating directories if necessary."""
    config_path = os.path.expanduser(THEME_CONFIG_PATH)
    try:
        os.makedirs(os.path.dirname(config_path), exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write(f"theme={name}\n")
    except OSError as e:
        logger.log(f"cannot write {config_path}: {e}")


def to_curses(rgb):
    r, g, b = rgb
    return int(r / 255 * 1000), int(g / 255 * 1000), int(b / 255 * 1000)


def apply_theme(data, extended: bool) -> None:
    """Initialize the fixed color pairs from a theme."""
    if extended:
        try:
            curses.init_color(COLOR_BG, *to_curses(data["bg"]))
            curses.init_color(COLOR_FG, *to_curses(data["fg"]))
            curses.init_color(COLOR_BOLD, *to_curses(data["bold"]))
            curses.init_color(COLOR_UNDERLINE, *to_curses(data["underline"]))
            curses.init_color(COLOR_STATUS, *to_curses(data["status"]))
            curses.init_color(COLOR_MATCH, *to_curses(data["match"]))
            curses.init_color(COLOR_REVERSE, *to_curses(data["reverse"]))
        except curses.error:
            logger.log("init_color failed")
        curses.init_pair(PAIR_NORMAL, COLOR_FG, COLOR_BG)
        curses.init_pair(PAIR_BOLD, COLOR_BOLD, COLOR_BG)
        curses.init_pair(PAIR_UNDERLINE, COLOR_UNDERLINE, COLOR_BG)
        curses.init_pair(PAIR_REVERSE, COLOR_FG, COLOR_REVERSE)
        curses.init_pair(PAIR_STATUS, COLOR_FG, COLOR_STATUS)
        curses.init_pair(PAIR_MATCH, COLOR_BG, COLOR_MATCH)
    else:
        # Fallback color pairs
        curses.init_pair(PAIR_NORMAL, curses.COLOR_WHITE, curses.COLOR_BLACK)
        curses.init_pair(PAIR_BOLD, curses.COLOR_BLUE, curses.COLOR_BLACK)
        curses.init_pair(PAIR_UNDERLINE, curses.COLOR_CYAN, curses.COLOR_BLACK)
        curses.init_pair(PAIR_REVERSE, curses.COLOR_WHITE, curses.COLOR_MAGENTA)
        curses.init_pair(PAIR_STATUS, curses.COLOR_BLACK, curses.COLOR_WHITE)
        curses.init_pair(PAIR_MATCH, curses.COLOR_BLACK, curses.COLOR_YELLOW)


class ColorPairs:
    """
    Hands out color pairs for SGR foreground/background combinations.
    Pairs are created on first use; None means no pair is left.
    """

    def __init__(self, extended: bool):
        self.extended = extended
        self.pairs = {}
        self.next_pair = FIRST_DYNAMIC_PAIR
        self.exhausted = False

    def reset(self) -> None:
        self.pairs = {}
        self.next_pair = FIRST_DYNAMIC_PAIR
        self.exhausted = False

    def _color(self, index, default: int) -> int:
        if index is None:
            return default
        if index >= 8 and curses.COLORS < 16:
            index -= 8
        return index

    def pair_for(self, fg, bg):
        key = (fg, bg)
        if key in self.pairs:
            return self.pairs[key]
        if self.next_pair >= curses.COLOR_PAIRS:
            if not self.exhausted:
                logger.log("out of color pairs")
            self.exhausted = True
            return None
        default_fg = COLOR_FG if self.extended else curses.COLOR_WHITE
        default_bg = COLOR_BG if self.extended else curses.COLOR_BLACK
        pair = self.next_pair
        curses.init_pair(pair, self._color(fg, default_fg), self._color(bg, default_bg))
        self.pairs[key] = pair
        self.next_pair += 1
        return pair
