import argparse
import json
import sys
from typing import Dict, Any, List, Optional

from nurimisaki_model import NurimisakiBoard, MAX_ROW_WIDTH
from nurimisaki_puzzles import load_puzzle_file, parse_puzz_link, get_example, EXAMPLES
from nurimisaki_search import NurimisakiSolver, SearchAborted, SOLVED, ABORTED

EXIT_UNSOLVABLE = 2
EXIT_ABORTED = 3


def load_grid(args: argparse.Namespace) -> List[List[int]]:
    """Resolve the puzzle source given on the command line, exiting on bad input."""
    if args.example:
        return get_example(args.example)
    if args.url:
        grid = parse_puzz_link(args.url)
        if grid is None:
            print(f"Error: not a valid puzz.link nurimisaki URL: {args.url}")
            sys.exit(1)
        return grid
    if not args.grid_file:
        print("Error: give a puzzle file, --url or --example.")
        sys.exit(1)
    grid, msg = load_puzzle_file(args.grid_file)
    if grid is None:
        print(f"Error parsing grid: {msg}")
        sys.exit(1)
    return grid


def summarize(board: NurimisakiBoard, status: str, num_call: int) -> Dict[str, Any]:
    return {
        "status": status,
        "is_fully_solved": status == SOLVED,
        "num_call": num_call,
        "final_grid": board.to_state_grid(),
    }


def run(args: argparse.Namespace) -> int:
    grid = load_grid(args)
    try:
        board = NurimisakiBoard(grid, max_cols=None if args.wide else MAX_ROW_WIDTH)
    except ValueError as e:
        print(f"Error: invalid puzzle: {e}")
        return 1

    print(board)
    contradiction = board.find_contradiction()
    if contradiction is not None:
        print(f"Initial board is already contradictory: {contradiction.rule}: {contradiction.message}")

    solver = NurimisakiSolver(
        board,
        max_calls=args.max_calls,
        time_limit=args.time_limit,
        progress_every=args.progress,
    )

    if args.count:
        try:
            n = solver.count_solutions(limit=args.count)
        except SearchAborted as e:
            print(f"result = {ABORTED}: {e}")
            print(f"stat = {solver.stats}")
            return EXIT_ABORTED
        print(f"solutions found = {n}{' (limit reached)' if n >= args.count else ''}")
        print(f"stat = {solver.stats}")
        return 0 if n else EXIT_UNSOLVABLE

    result = solver.solve()
    print(f"result = {result.status}")
    if result.solved:
        print(result.board)
    print(f"stat = {result.stats}")

    if args.image:
        # pygame only needed for image export
        from nurimisaki_drawing import save_board_image
        save_board_image(board, args.image, title=f"{result.status} ({result.stats.num_call} calls)")
        print(f"Image saved to '{args.image}'")

    if args.json:
        with open(args.json, "w") as f:
            json.dump(summarize(board, result.status, result.stats.num_call), f, indent=2, sort_keys=True)

    if result.status == ABORTED:
        return EXIT_ABORTED
    return 0 if result.solved else EXIT_UNSOLVABLE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Nurimisaki Solver")
    parser.add_argument("grid_file", nargs="?", help="Path to a puzzle file (text grid or puzz.link URL)")
    parser.add_argument("--url", help="puzz.link URL, e.g. https://puzz.link/p?nurimisaki/6/6/...")
    parser.add_argument("--example", choices=sorted(EXAMPLES), help="Solve a bundled example puzzle.")
    parser.add_argument("--max-calls", type=int, default=None, help="Abort after this many search nodes.")
    parser.add_argument("--time-limit", type=float, default=None, help="Abort after this many seconds.")
    parser.add_argument("--progress", type=int, default=0, metavar="N",
                        help="Print a progress line every N search nodes.")
    parser.add_argument("--count", type=int, default=0, metavar="LIMIT",
                        help="Count solutions (up to LIMIT) instead of stopping at the first one.")
    parser.add_argument("--image", help="Save the final board as an image (e.g. out.png).")
    parser.add_argument("--json", help="Save the final board state as JSON.")
    parser.add_argument("--wide", action="store_true", help="Allow boards wider than 64 columns.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
