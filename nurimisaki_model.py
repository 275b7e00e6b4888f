from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Optional, Iterator

# ----------------------------
# Domain model
# ----------------------------

UNKNOWN = 0
BLACK = 1
WHITE = 2

BLANK = 0
PLAIN_CAPE = 1  # circle without a number: distance unconstrained

# Rows are packed into ints, one bit per column. Pass max_cols=None to lift the limit.
MAX_ROW_WIDTH = 64

RuleName = str


@dataclass
class Cape:
    clue: int
    pos: Tuple[int, int]  # (r,c)

    @property
    def has_distance(self) -> bool:
        return self.clue >= 2


@dataclass
class Contradiction:
    cells: List[Tuple[int, int]]
    message: str = ""
    rule: RuleName = ""
    format_args: Optional[tuple] = field(default=None, repr=False)


def iter_bits(mask: int) -> Iterator[int]:
    """Yield the indices of the set bits of mask, lowest first."""
    while mask:
        low = mask & -mask
        yield low.bit_length() - 1
        mask ^= low


def cape_glyph(clue: int) -> str:
    return "O" if clue == PLAIN_CAPE else str(clue)


class NurimisakiBoard:
    def __init__(self, grid: List[List[int]], max_cols: Optional[int] = MAX_ROW_WIDTH) -> None:
        if not grid or not grid[0]:
            raise ValueError("Empty grid.")
        cols = len(grid[0])
        if any(len(row) != cols for row in grid):
            raise ValueError("Ragged rows: all rows must have the same number of columns.")
        if max_cols is not None and cols > max_cols:
            raise ValueError(f"Grid is {cols} columns wide; at most {max_cols} supported.")

        self.rows = len(grid)
        self.cols = cols
        self.clues: List[List[int]] = []
        for row in grid:
            if any(int(v) < 0 for v in row):
                raise ValueError("Negative clue not allowed.")
            self.clues.append([int(v) for v in row])

        self.full_mask = (1 << cols) - 1
        self.capes: List[Cape] = []
        self.cape_by_pos: Dict[Tuple[int, int], Cape] = {}

        # bit c of white[r] / black[r] <=> cell (r,c) has that color
        self.white: List[int] = [0] * self.rows
        self.black: List[int] = [0] * self.rows
        for r in range(self.rows):
            for c in range(self.cols):
                if self.clues[r][c] != BLANK:
                    cape = Cape(clue=self.clues[r][c], pos=(r, c))
                    self.capes.append(cape)
                    self.cape_by_pos[(r, c)] = cape
                    self.white[r] |= 1 << c

    # ----------------------------
    # Queries
    # ----------------------------

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < self.rows and 0 <= c < self.cols

    def neighbors4(self, r: int, c: int) -> List[Tuple[int, int]]:
        out = []
        for dr, dc in [(-1, 0), (1, 0), (0, -1), (0, 1)]:
            rr, cc = r + dr, c + dc
            if self.in_bounds(rr, cc):
                out.append((rr, cc))
        return out

    def is_cape(self, r: int, c: int) -> bool:
        return self.clues[r][c] != BLANK

    def cape_clue(self, r: int, c: int) -> int:
        return self.clues[r][c]

    def is_white(self, r: int, c: int) -> bool:
        return (self.white[r] >> c) & 1 == 1

    def is_black(self, r: int, c: int) -> bool:
        return (self.black[r] >> c) & 1 == 1

    def is_undetermined(self, r: int, c: int) -> bool:
        return ((self.white[r] | self.black[r]) >> c) & 1 == 0

    def state(self, r: int, c: int) -> int:
        if self.is_white(r, c):
            return WHITE
        if self.is_black(r, c):
            return BLACK
        return UNKNOWN

    def undetermined_mask(self, r: int) -> int:
        return self.full_mask & ~(self.white[r] | self.black[r])

    def count_undetermined(self) -> int:
        return sum(bin(self.undetermined_mask(r)).count("1") for r in range(self.rows))

    def all_determined(self) -> bool:
        full = self.full_mask
        return all((w | b) == full for w, b in zip(self.white, self.black))

    def first_undetermined(self) -> Optional[Tuple[int, int]]:
        """First undetermined cell in row-major order."""
        for r in range(self.rows):
            free = self.undetermined_mask(r)
            if free:
                return r, (free & -free).bit_length() - 1
        return None

    # ----------------------------
    # Mutation (the search pairs every assign with an unassign)
    # ----------------------------

    def assign_white(self, r: int, c: int) -> None:
        if not self.is_undetermined(r, c):
            raise ValueError(f"Cell ({r},{c}) is already colored.")
        self.white[r] |= 1 << c

    def assign_black(self, r: int, c: int) -> None:
        if not self.is_undetermined(r, c):
            raise ValueError(f"Cell ({r},{c}) is already colored.")
        self.black[r] |= 1 << c

    def unassign(self, r: int, c: int) -> None:
        if self.is_cape(r, c):
            raise ValueError(f"Cell ({r},{c}) is a cape and stays white.")
        bit = 1 << c
        self.white[r] &= ~bit
        self.black[r] &= ~bit

    # ----------------------------
    # Consistency
    # ----------------------------

    def find_contradiction(self) -> Optional[Contradiction]:
        # imported here: the rules module depends on this one
        from nurimisaki_rules import NurimisakiChecker
        return NurimisakiChecker(self).find_contradiction()

    def is_consistent(self) -> bool:
        return self.find_contradiction() is None

    def is_fully_colored(self) -> bool:
        return self.all_determined() and self.is_consistent()

    # ----------------------------
    # Rendering / serialization
    # ----------------------------

    def render(self) -> str:
        lines = []
        for r in range(self.rows):
            chars = []
            for c in range(self.cols):
                if self.is_cape(r, c):
                    chars.append(cape_glyph(self.clues[r][c]))
                elif self.is_black(r, c):
                    chars.append("*")
                elif self.is_white(r, c):
                    chars.append(".")
                else:
                    chars.append("_")
            lines.append("".join(chars) + "\n")
        return "".join(lines)

    def __str__(self) -> str:
        return self.render()

    def to_state_grid(self) -> List[List[str]]:
        """Per-cell state strings, the form stored in regression references."""
        grid_state = []
        for r in range(self.rows):
            row_state = []
            for c in range(self.cols):
                if self.is_cape(r, c):
                    row_state.append(f"CAPE({self.clues[r][c]})")
                elif self.is_black(r, c):
                    row_state.append("BLACK")
                elif self.is_white(r, c):
                    row_state.append("WHITE")
                else:
                    row_state.append("UNKNOWN")
            grid_state.append(row_state)
        return grid_state

    def copy(self) -> "NurimisakiBoard":
        other = NurimisakiBoard(self.clues, max_cols=None)
        other.white = self.white[:]
        other.black = self.black[:]
        return other

    def snapshot(self) -> Dict[str, object]:
        """Return a self-contained, pickle/JSON friendly snapshot of the current state."""
        return {
            "clues": [row[:] for row in self.clues],
            "white": self.white[:],
            "black": self.black[:],
        }

    @classmethod
    def from_snapshot(cls, state: Dict[str, object], max_cols: Optional[int] = MAX_ROW_WIDTH) -> "NurimisakiBoard":
        """Rebuild a board from a state produced by snapshot()."""
        clues = state.get("clues")
        if not isinstance(clues, list) or not clues or not isinstance(clues[0], list):
            raise ValueError("Invalid snapshot: missing/invalid 'clues'.")

        board = cls([[int(v) for v in row] for row in clues], max_cols=max_cols)

        white = state.get("white")
        black = state.get("black")
        if not (isinstance(white, list) and isinstance(black, list)):
            raise ValueError("Invalid snapshot: missing arrays.")
        if len(white) != board.rows or len(black) != board.rows:
            raise ValueError("Invalid snapshot: row count mismatch.")

        for r in range(board.rows):
            w = int(white[r])
            b = int(black[r])
            if (w | b) & ~board.full_mask:
                raise ValueError(f"Invalid snapshot: row {r} has bits outside the grid.")
            if w & b:
                raise ValueError(f"Invalid snapshot: row {r} has cells both white and black.")
            # capes stay white; a snapshot may mark one black to record a broken board
            board.white[r] = (w | board.white[r]) & ~b
            board.black[r] = b
        return board
