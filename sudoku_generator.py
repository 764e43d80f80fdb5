import logging
import random
from typing import List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

Grid = List[int]

SIZE = 9
BOX = 3
CELLS = SIZE * SIZE
MAX_ATTEMPTS = 5

CLUES_BY_DIFFICULTY = {"easy": 40, "medium": 34, "hard": 28}


class CarveResult(NamedTuple):
    puzzle: Grid
    removed_count: int


class GeneratedPuzzle(NamedTuple):
    puzzle: Grid
    solution: Grid
    given: List[bool]


def is_valid_placement(grid: Grid, index: int, value: int) -> bool:
    """False if value already sits in the row, column or box of index.

    The cell at index itself is not checked, so callers clear it first when
    testing a replacement.
    """
    row, col = divmod(index, SIZE)
    for i in range(SIZE):
        if grid[row * SIZE + i] == value:
            return False
        if grid[i * SIZE + col] == value:
            return False
    br, bc = BOX * (row // BOX), BOX * (col // BOX)
    for r in range(br, br + BOX):
        for c in range(bc, bc + BOX):
            if grid[r * SIZE + c] == value:
                return False
    return True


def get_candidates(grid: Grid, index: int) -> List[int]:
    return [n for n in range(1, SIZE + 1) if is_valid_placement(grid, index, n)]


def find_empty_cell(grid: Grid) -> Tuple[int, Optional[List[int]]]:
    """Most constrained empty cell and its candidates, or (-1, None) when full.

    A cell with no candidates is returned at once so the caller can backtrack;
    a cell with a single candidate ends the scan early.
    """
    best_idx = -1
    best: Optional[List[int]] = None
    for i in range(CELLS):
        if grid[i] != 0:
            continue
        candidates = get_candidates(grid, i)
        if not candidates:
            return i, candidates
        if best is None or len(candidates) < len(best):
            best_idx, best = i, candidates
            if len(candidates) == 1:
                break
    return best_idx, best


def solve(grid: Grid, rng=None) -> bool:
    """Fill grid in place with randomized candidate order.

    On failure every tried cell is reset, leaving grid as it was passed in.
    """
    rng = rng or random
    idx, candidates = find_empty_cell(grid)
    if idx == -1:
        return True
    if not candidates:
        return False
    rng.shuffle(candidates)
    for n in candidates:
        grid[idx] = n
        if solve(grid, rng):
            return True
        grid[idx] = 0
    return False


def count_solutions(grid: Grid, limit: int = 2) -> int:
    """Count completions of grid, stopping once limit is reached."""
    idx, candidates = find_empty_cell(grid)
    if idx == -1:
        return 1
    if not candidates:
        return 0
    count = 0
    for n in candidates:
        grid[idx] = n
        count += count_solutions(grid, limit - count)
        grid[idx] = 0
        if count >= limit:
            break
    return count


def generate_solved_grid(rng=None) -> Grid:
    grid = [0] * CELLS
    solve(grid, rng)
    return grid


def clues_for_difficulty(difficulty: str) -> int:
    try:
        return CLUES_BY_DIFFICULTY[difficulty]
    except KeyError:
        raise ValueError(f"unknown difficulty: {difficulty!r}") from None


def remove_cells_for_puzzle(solution: Grid, difficulty: str, rng=None) -> CarveResult:
    """Blank cells of solution in one shuffled pass, keeping a unique solution.

    May stop short of the difficulty's target; the returned count says how far
    it got.
    """
    rng = rng or random
    target_holes = CELLS - clues_for_difficulty(difficulty)
    puzzle = list(solution)
    positions = list(range(CELLS))
    rng.shuffle(positions)

    removed = 0
    for idx in positions:
        if removed >= target_holes:
            break
        backup = puzzle[idx]
        puzzle[idx] = 0
        if count_solutions(list(puzzle), 2) != 1:
            puzzle[idx] = backup
        else:
            removed += 1
    return CarveResult(puzzle, removed)


def generate_puzzle(difficulty: str = "easy", rng=None) -> GeneratedPuzzle:
    rng = rng or random
    target_holes = CELLS - clues_for_difficulty(difficulty)
    for attempt in range(1, MAX_ATTEMPTS + 1):
        solution = generate_solved_grid(rng)
        puzzle, removed = remove_cells_for_puzzle(solution, difficulty, rng)
        if removed >= target_holes:
            logger.debug("generated %s puzzle on attempt %d", difficulty, attempt)
            return GeneratedPuzzle(puzzle, solution, [v != 0 for v in puzzle])
        logger.debug("attempt %d removed %d of %d cells", attempt, removed, target_holes)

    solution = generate_solved_grid(rng)
    puzzle, removed = remove_cells_for_puzzle(solution, difficulty, rng)
    logger.warning(
        "%s puzzle fell back to %d clues after %d attempts:\n%s",
        difficulty, CELLS - removed, MAX_ATTEMPTS, board_string(puzzle),
    )
    return GeneratedPuzzle(puzzle, solution, [v != 0 for v in puzzle])


def board_string(grid: Grid) -> str:
    horizontal_line = "+-------+-------+-------+"
    lines = [horizontal_line]
    for r in range(SIZE):
        line = "|"
        for c in range(SIZE):
            value = grid[r * SIZE + c]
            line += f" {'.' if value == 0 else value}"
            if (c + 1) % BOX == 0:
                line += " |"
        lines.append(line)
        if (r + 1) % BOX == 0:
            lines.append(horizontal_line)
    return "\n".join(lines)
