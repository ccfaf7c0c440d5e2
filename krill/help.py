"""
The built-in help page, laid out like a formatted manual page so that the
outline and reference search work on it.
"""
HELP_NAME = "krill-help(1)"

_HEADER = "KRILL-HELP(1)            General Commands Manual            KRILL-HELP(1)"

_SECTIONS = [
    ("NAME", [
        "       krill-help - keys of the krill pager",
    ]),
    ("SYNOPSIS", [
        "       krill [options] [file ...]",
        "       command | krill [options]",
    ]),
    ("DESCRIPTION", [
        "       krill pages files, pipes and manual pages.  Manual pages can be",
        "       navigated through their outline and through references to other",
        "       manual pages like ls(1) or regex(7).",
    ]),
    ("KEYS", [
        "   Moving",
        "       SPACE, f, PgDn",
        "           Next page.",
        "       b, PgUp",
        "           Previous page.",
        "       ENTER, e, j, Down",
        "           One line forward.",
        "       y, k, Up",
        "           One line back.",
        "       g, <",
        "           Go to the start.",
        "       G, >",
        "           Go to the end.",
        "       Left, Right",
        "           Shift the view horizontally when lines are chopped.",
        "       Mouse wheel",
        "           One line back or forward.",
        "       Click, double click",
        "           Select the reference under the pointer, or open it.",
        "",
        "   Searching",
        "       /  ?",
        "           Search forward or backward for a regular expression.",
        "       n  p",
        "           Repeat the search forward or backward.",
        "       TAB  Shift-TAB",
        "           Next or previous valid reference; ENTER opens it.",
        "       ESC",
        "           Turn highlighting off.",
        "       Ctrl-L",
        "           Show the current match with the other alignment once.",
        "",
        "   Outline",
        "       T",
        "           Show the outline; in the outline, cycle its level.",
        "       ENTER",
        "           Leave the outline at the selected entry.",
        "       q",
        "           Leave the outline.",
        "",
        "   Documents",
        "       B",
        "           List open documents and switch to one of them.",
        "       a",
        "           Open the apropos listing of all manual pages.",
        "       m",
        "           Open a manual page by name.",
        "       c",
        "           Close the current document.",
        "       h",
        "           Show this help; q closes it.",
        "       q",
        "           Quit.",
        "",
        "   Toggles",
        "       -c  -n  -i",
        "           Chopping of long lines, line numbers, case sensitivity.",
        "       -h  -V",
        "           Highlighting, verification of references.",
        "       -T  -t",
        "           Alignment of matches (context or top), next color theme.",
    ]),
    ("ENVIRONMENT", [
        "       KRILL_OPTIONS",
        "           Options read before the command line.",
        "       KRILL_OPEN, LESSOPEN",
        "           Input preprocessor of the form |command %s.",
    ]),
    ("SEE ALSO", [
        "       man(1), apropos(1), less(1)",
    ]),
]


def _bold(text: str) -> str:
    return "".join(f"{c}\b{c}" for c in text)


def help_text() -> bytes:
    lines = [_HEADER, ""]
    for title, body in _SECTIONS:
        lines.append(_bold(title))
        lines.extend(body)
        lines.append("")
    return ("\n".join(lines) + "\n").encode("utf-8")
