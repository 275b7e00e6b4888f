from typing import Optional, List, Callable, Tuple
from nurimisaki_model import NurimisakiBoard, Contradiction, iter_bits
from disjoint_set import UnionFind

# Global registry for checks: list of (priority, func, name)
_RULES = []


def checker_rule(priority: int, name: str, message: str = "") -> Callable:
    """Decorator to register a contradiction check with a priority and a descriptive name."""
    def decorator(func: Callable) -> Callable:
        func._rule_name = name
        func._rule_message = message
        _RULES.append((priority, func, name))
        return func
    return decorator


def rule_names() -> List[str]:
    return [name for _, _, name in sorted(_RULES, key=lambda x: x[0])]


class NurimisakiChecker:
    """
    Evaluates every registered check over the whole board.

    Checks hold no state between calls; each one returns None when the board
    passes it, or a Contradiction naming the offending cells. Cheap local
    checks run first, the connectivity check (which builds a union-find)
    runs last.
    """

    DIRECTIONS = [(-1, 0), (1, 0), (0, -1), (0, 1)]

    def __init__(self, board: NurimisakiBoard) -> None:
        self.board = board

    def find_contradiction(self) -> Optional[Contradiction]:
        for _, func, name in sorted(_RULES, key=lambda x: x[0]):
            res = func(self)
            if res:
                if not res.rule:
                    res.rule = name
                if func._rule_message and not res.message:
                    if res.format_args:
                        try:
                            res.message = func._rule_message % res.format_args
                        except TypeError:
                            res.message = func._rule_message
                    else:
                        res.message = func._rule_message
                return res
        return None

    def is_consistent(self) -> bool:
        return self.find_contradiction() is None

    def run_rule(self, name: str) -> Optional[Contradiction]:
        """Run a single check by name (or by its code, e.g. 'C3')."""
        for _, func, rule_name in _RULES:
            if rule_name == name or rule_name.split()[0] == name:
                res = func(self)
                if res and not res.rule:
                    res.rule = rule_name
                return res
        raise ValueError(f"Unknown rule: {name}")

    @checker_rule(priority=1, name="C1 Cape color",
                  message="Cape at (%d,%d) is marked black.")
    def check_cape_color(self) -> Optional[Contradiction]:
        b = self.board
        for cape in b.capes:
            r, c = cape.pos
            if (b.black[r] >> c) & 1:
                return Contradiction(cells=[(r, c)], format_args=(r, c))
        return None

    @checker_rule(priority=2, name="C2 Open side",
                  message="White cell (%d,%d) has %d white and %d non-black neighbors.")
    def check_open_side(self) -> Optional[Contradiction]:
        """
        C2: a cape is the tip of the white region, so at most one white neighbor
        and at least one side left open. Any other white cell continues the
        region and needs two sides not closed by black.
        Off-grid neighbors count as not-black and never as white.
        """
        b = self.board
        white, black = b.white, b.black
        for r in range(b.rows):
            for c in iter_bits(white[r]):
                num_white = 0
                num_not_black = 0
                for dr, dc in self.DIRECTIONS:
                    rr, cc = r + dr, c + dc
                    if not b.in_bounds(rr, cc):
                        num_not_black += 1
                        continue
                    if not (black[rr] >> cc) & 1:
                        num_not_black += 1
                    if (white[rr] >> cc) & 1:
                        num_white += 1
                if b.is_cape(r, c):
                    if num_white >= 2 or num_not_black == 0:
                        return Contradiction(cells=[(r, c)], format_args=(r, c, num_white, num_not_black))
                elif num_not_black <= 1:
                    return Contradiction(cells=[(r, c)], format_args=(r, c, num_white, num_not_black))
        return None

    @checker_rule(priority=3, name="C3 No 2x2",
                  message="2x2 block at (%d,%d) is all %s.")
    def check_2x2(self) -> Optional[Contradiction]:
        b = self.board
        for r in range(b.rows - 1):
            for color, masks in (("white", b.white), ("black", b.black)):
                both = masks[r] & masks[r + 1]
                # bit c set <=> columns c and c+1 both have the color in rows r and r+1
                pool = both & (both >> 1)
                if pool:
                    c = (pool & -pool).bit_length() - 1
                    cells = [(r, c), (r, c + 1), (r + 1, c), (r + 1, c + 1)]
                    return Contradiction(cells=cells, format_args=(r, c, color))
        return None

    @checker_rule(priority=4, name="C4 Cape distance",
                  message="Cape %d at (%d,%d) cannot extend exactly %d cells in any direction.")
    def check_cape_distance(self) -> Optional[Contradiction]:
        b = self.board
        for cape in b.capes:
            if not cape.has_distance:
                continue
            r, c = cape.pos
            if not any(self._arm_fits(r, c, dr, dc, cape.clue) for dr, dc in self.DIRECTIONS):
                return Contradiction(cells=[(r, c)], format_args=(cape.clue, r, c, cape.clue))
        return None

    def _arm_fits(self, r: int, c: int, dr: int, dc: int, k: int) -> bool:
        """
        True if the arm from (r,c) can still be exactly k cells long in direction
        (dr,dc): cells at distance 1..k-1 on the grid and not black, the cell at
        distance k off-grid or not white.
        """
        b = self.board
        end_r, end_c = r + dr * (k - 1), c + dc * (k - 1)
        if not b.in_bounds(end_r, end_c):
            return False
        if dr == 0:
            lo, hi = min(c, end_c), max(c, end_c)
            span = ((1 << (hi - lo + 1)) - 1) << lo
            span &= ~(1 << c)
            if b.black[r] & span:
                return False
        else:
            for d in range(1, k):
                if (b.black[r + dr * d] >> c) & 1:
                    return False
        stop_r, stop_c = r + dr * k, c + dc * k
        if b.in_bounds(stop_r, stop_c) and b.is_white(stop_r, stop_c):
            return False
        return True

    @checker_rule(priority=5, name="C5 Connectivity",
                  message="White cells %s and %s cannot be connected through non-black cells.")
    def check_connectivity(self) -> Optional[Contradiction]:
        b = self.board
        rows, cols = b.rows, b.cols
        uf = UnionFind(rows * cols)
        not_black = [b.full_mask & ~row for row in b.black]

        for r in range(rows):
            base = r * cols
            # horizontal edges: bit c <=> (r,c) and (r,c+1) both not black
            for c in iter_bits(not_black[r] & (not_black[r] >> 1)):
                uf.union(base + c, base + c + 1)
            if r + 1 < rows:
                for c in iter_bits(not_black[r] & not_black[r + 1]):
                    uf.union(base + c, base + cols + c)

        first: Optional[Tuple[int, int]] = None
        first_root = -1
        for r in range(rows):
            for c in iter_bits(b.white[r]):
                root = uf.find(r * cols + c)
                if first is None:
                    first, first_root = (r, c), root
                elif root != first_root:
                    return Contradiction(cells=[first, (r, c)], format_args=(first, (r, c)))
        return None
