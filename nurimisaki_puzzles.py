"""
Puzzle ingestion: text grids, puzz.link URLs and the bundled examples.

Text grid format:
- One row per line. Blank lines and lines starting with '#' are ignored.
- '.', '_' or '0' for a cell without a cape.
- 'O' (or 'o') for a cape without a number, digits for a numbered cape.
- Separate tokens by whitespace OR write them tightly (e.g. "3.O..").
  Multi-digit clues need the spaced form.
Example (Nikoli's sample puzzle):
  3.O..
  ...4.
  4....
  .....
  ....4
"""

import os
from typing import List, Tuple, Optional, Dict, Callable

from nurimisaki_model import BLANK, PLAIN_CAPE

PUZZ_LINK_PREFIX = "https://puzz.link/p?nurimisaki"
MAX_PUZZ_LINK_CELLS = 10_000

PUZZLE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "puzzles")

BLANK_TOKENS = {".", "_", "0"}
PLAIN_CAPE_TOKENS = {"O", "o"}


def _parse_token(tok: str) -> Tuple[Optional[int], str]:
    if tok in BLANK_TOKENS:
        return BLANK, ""
    if tok in PLAIN_CAPE_TOKENS:
        return PLAIN_CAPE, ""
    try:
        v = int(tok)
    except ValueError:
        return None, f"Bad token: {tok}"
    if v < 0:
        return None, "Negative clue not allowed."
    return v, ""


def parse_puzzle_text(text: str) -> Tuple[Optional[List[List[int]]], str]:
    """Parse a text grid. Returns (grid, message); grid is None on failure."""
    lines = [ln.strip() for ln in text.splitlines()]
    lines = [ln for ln in lines if ln != "" and not ln.startswith("#")]
    if not lines:
        return None, "Empty input."

    grid: List[List[int]] = []
    for ln in lines:
        toks = ln.split() if any(ch.isspace() for ch in ln) else list(ln)
        row: List[int] = []
        for tok in toks:
            v, err = _parse_token(tok)
            if v is None:
                return None, err
            row.append(v)
        grid.append(row)

    cols = len(grid[0])
    if any(len(r) != cols for r in grid):
        return None, "Ragged rows: all rows must have the same number of columns."
    return grid, "Loaded."


def parse_puzz_link(url: str) -> Optional[List[List[int]]]:
    """
    Parse a URL like https://puzz.link/p?nurimisaki/9/9/.2zzzy
    or https://puzz.link/p?nurimisaki_edit/9/9/.2zzzy.

    The size fields are <cols>/<rows>. In the body, '.' is a cape without a
    number, 'g'..'z' skip 1..20 blank cells, a hex digit is one cell value
    (0 meaning blank) and '-' makes the next two hex digits a single value.
    """
    if not url.startswith(PUZZ_LINK_PREFIX):
        return None
    rest = url[len(PUZZ_LINK_PREFIX):]
    if rest.startswith("/"):
        rest = rest[1:]
    elif rest.startswith("_edit/"):
        rest = rest[len("_edit/"):]
    else:
        return None

    parts = rest.split("/")
    if len(parts) != 3:
        return None
    try:
        cols = int(parts[0])
        rows = int(parts[1])
    except ValueError:
        return None
    body = parts[2]
    if rows <= 0 or cols <= 0:
        return None
    if rows * cols >= MAX_PUZZ_LINK_CELLS or len(body) >= MAX_PUZZ_LINK_CELLS:
        return None

    data: List[int] = []
    pending_high: Optional[int] = None  # set after '-' and its first digit
    two_digit = False
    for ch in body:
        if ch == ".":
            data.append(PLAIN_CAPE)
        elif "g" <= ch <= "z":
            data.extend([BLANK] * (ord(ch) - ord("f")))
        elif ch == "-":
            two_digit = True
        elif ch in "0123456789abcdef":
            dig = int(ch, 16)
            if two_digit:
                pending_high = dig
                two_digit = False
            elif pending_high is not None:
                data.append(16 * pending_high + dig)
                pending_high = None
            else:
                data.append(dig)
        else:
            return None

    if len(data) != rows * cols:
        return None
    return [data[r * cols:(r + 1) * cols] for r in range(rows)]


def format_puzzle_text(grid: List[List[int]]) -> str:
    """Inverse of parse_puzzle_text, tight form when every clue is a single digit."""
    spaced = any(v >= 10 for row in grid for v in row)
    lines = []
    for row in grid:
        toks = ["." if v == BLANK else "O" if v == PLAIN_CAPE else str(v) for v in row]
        lines.append(" ".join(toks) if spaced else "".join(toks))
    return "\n".join(lines) + "\n"


def load_puzzle_file(path: str) -> Tuple[Optional[List[List[int]]], str]:
    """Read a puzzle file: a text grid, or a single puzz.link URL."""
    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as e:
        return None, f"Cannot read '{path}': {e}"

    stripped = content.strip()
    if stripped.startswith(PUZZ_LINK_PREFIX):
        grid = parse_puzz_link(stripped)
        if grid is None:
            return None, f"Bad puzz.link URL in '{path}'."
        return grid, "Loaded."
    return parse_puzzle_text(content)


# ----------------------------
# Bundled examples
# ----------------------------

def example_nikoli() -> List[List[int]]:
    # https://www.nikoli.co.jp/ja/puzzles/nurimisaki/
    grid = [[BLANK] * 5 for _ in range(5)]
    grid[0][0] = 3
    grid[0][2] = PLAIN_CAPE
    for r, c in [(1, 3), (2, 0), (4, 4)]:
        grid[r][c] = 4
    return grid


def example_puzsq_101318() -> List[List[int]]:
    # https://puzsq.logicpuzzle.app/puzzle/101318
    return parse_puzz_link("https://puzz.link/p?nurimisaki/6/6/4j6l.o.j2h4i.g")


def example_puzsq_101809() -> List[List[int]]:
    # https://puzsq.logicpuzzle.app/puzzle/101809
    return parse_puzz_link("https://puzz.link/p?nurimisaki/10/10/g2t.h.r.j.u6l.t4zg.g6")


EXAMPLES: Dict[str, Callable[[], List[List[int]]]] = {
    "nikoli": example_nikoli,
    "puzsq-101318": example_puzsq_101318,
    "puzsq-101809": example_puzsq_101809,
}


def get_example(name: str) -> List[List[int]]:
    if name not in EXAMPLES:
        raise ValueError(f"Unknown example '{name}'. Available: {', '.join(sorted(EXAMPLES))}")
    return EXAMPLES[name]()
