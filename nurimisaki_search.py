import time
from dataclasses import dataclass
from typing import Optional, List, Tuple, Iterator

from nurimisaki_model import NurimisakiBoard, WHITE, BLACK

SOLVED = "SOLVED"
UNSOLVABLE = "UNSOLVABLE"
ABORTED = "ABORTED"

DEFAULT_PROGRESS_EVERY = 0  # 0 disables progress lines


class SearchAborted(Exception):
    """Raised inside the walk when a call or time budget runs out."""


@dataclass
class SearchStats:
    num_call: int = 0
    max_depth: int = 0
    solutions: int = 0
    elapsed: float = 0.0


@dataclass
class SolveResult:
    status: str
    board: Optional[NurimisakiBoard]
    stats: SearchStats
    message: str = ""

    @property
    def solved(self) -> bool:
        return self.status == SOLVED


class NurimisakiSolver:
    """
    Exhaustive backtracking over undetermined cells.

    At every node: a fully colored consistent board is a solution; an
    inconsistent board is a dead branch; otherwise the first undetermined cell
    in row-major order is tried white, then black. There is no propagation and
    no memoization, so failure at a node is conclusive for its whole subtree.

    The walk keeps an explicit trail of assignments instead of recursing; the
    board is mutated and restored in the same order as the recursive form, and
    stats.num_call matches its call count.
    """

    def __init__(
        self,
        board: NurimisakiBoard,
        max_calls: Optional[int] = None,
        time_limit: Optional[float] = None,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
    ) -> None:
        self.board = board
        self.max_calls = max_calls
        self.time_limit = time_limit
        self.progress_every = progress_every
        self.stats = SearchStats()
        self._deadline: Optional[float] = None

    def solve(self) -> SolveResult:
        """Search for the first solution. On success the board holds it; otherwise it is restored."""
        self._start()
        trail: List[Tuple[int, int, int]] = []
        try:
            found = self._advance(trail)
        except SearchAborted as e:
            self._unwind(trail)
            return self._finish(ABORTED, None, str(e))

        if found:
            self.stats.solutions = 1
            return self._finish(SOLVED, self.board, "Solved.")
        return self._finish(UNSOLVABLE, None, "No solution.")

    def iter_solutions(self) -> Iterator[NurimisakiBoard]:
        """
        Yield a copy of every solution, in search order.
        The board is restored when the generator is exhausted or closed.
        """
        self._start()
        trail: List[Tuple[int, int, int]] = []
        try:
            while self._advance(trail):
                self.stats.solutions += 1
                yield self.board.copy()
                # a solution is a leaf: step past it like a failed branch
                if not self._backtrack(trail):
                    break
        finally:
            self._unwind(trail)
            self.stats.elapsed = time.time() - self._started

    def count_solutions(self, limit: Optional[int] = None) -> int:
        """Count solutions up to limit. SearchAborted propagates when a budget runs out; the board is restored."""
        count = 0
        gen = self.iter_solutions()
        try:
            for _ in gen:
                count += 1
                if limit is not None and count >= limit:
                    break
        finally:
            gen.close()
        return count

    def is_unique(self) -> bool:
        return self.count_solutions(limit=2) == 1

    # ----------------------------
    # Walk
    # ----------------------------

    def _advance(self, trail: List[Tuple[int, int, int]]) -> bool:
        """
        Walk from the current node until a solution is reached (True, board left
        in that state) or the tree under the trail's root is exhausted (False,
        trail empty).
        """
        board = self.board
        while True:
            self._enter_node(len(trail))
            if board.all_determined():
                if board.is_consistent():
                    return True
            elif board.is_consistent():
                r, c = board.first_undetermined()
                board.assign_white(r, c)
                trail.append((r, c, WHITE))
                continue
            if not self._backtrack(trail):
                return False

    def _backtrack(self, trail: List[Tuple[int, int, int]]) -> bool:
        """Undo to the deepest cell still untried as black and try it. False once nothing is left."""
        board = self.board
        while trail:
            r, c, color = trail.pop()
            board.unassign(r, c)
            if color == WHITE:
                board.assign_black(r, c)
                trail.append((r, c, BLACK))
                return True
        return False

    def _unwind(self, trail: List[Tuple[int, int, int]]) -> None:
        while trail:
            r, c, _ = trail.pop()
            self.board.unassign(r, c)

    def _enter_node(self, depth: int) -> None:
        stats = self.stats
        stats.num_call += 1
        if depth > stats.max_depth:
            stats.max_depth = depth
        if self.max_calls is not None and stats.num_call > self.max_calls:
            raise SearchAborted(f"Call budget of {self.max_calls} exhausted.")
        if self._deadline is not None and time.time() > self._deadline:
            raise SearchAborted(f"Time limit of {self.time_limit}s exceeded.")
        if self.progress_every and stats.num_call % self.progress_every == 0:
            print(f"[search] {stats.num_call} calls, depth {depth}, "
                  f"{self.board.count_undetermined()} cells undetermined")

    def _start(self) -> None:
        self.stats = SearchStats()
        self._started = time.time()
        self._deadline = self._started + self.time_limit if self.time_limit is not None else None

    def _finish(self, status: str, board: Optional[NurimisakiBoard], message: str) -> SolveResult:
        self.stats.elapsed = time.time() - self._started
        return SolveResult(status=status, board=board, stats=self.stats, message=message)


def solve_grid(grid: List[List[int]], **solver_kwargs) -> SolveResult:
    """Build a board from an initial grid and run the search on it."""
    board = NurimisakiBoard(grid)
    return NurimisakiSolver(board, **solver_kwargs).solve()
