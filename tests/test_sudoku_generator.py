import random

import pytest

from sudoku_generator import (
    CELLS,
    board_string,
    clues_for_difficulty,
    count_solutions,
    find_empty_cell,
    generate_puzzle,
    generate_solved_grid,
    get_candidates,
    is_valid_placement,
    remove_cells_for_puzzle,
    solve,
)


def assert_valid_solution(grid):
    assert len(grid) == CELLS
    digits = set(range(1, 10))
    for r in range(9):
        assert set(grid[r * 9:(r + 1) * 9]) == digits
    for c in range(9):
        assert {grid[r * 9 + c] for r in range(9)} == digits
    for br in range(0, 9, 3):
        for bc in range(0, 9, 3):
            box = {grid[(br + r) * 9 + bc + c] for r in range(3) for c in range(3)}
            assert box == digits


def band_with_swappable_pair():
    """A solved grid where cells 0, 3, 9 and 12 hold 1/4 and 4/1.

    Blanking all four leaves two boxes that can swap the pair.
    """
    grid = [0] * CELLS
    grid[:27] = [
        1, 2, 3, 4, 5, 6, 7, 8, 9,
        4, 5, 7, 1, 8, 9, 2, 3, 6,
        6, 8, 9, 2, 3, 7, 1, 4, 5,
    ]
    assert solve(grid, random.Random(0))
    return grid


class FixedOrder:
    """Shuffle stand-in that yields a chosen prefix, then the rest in order."""

    def __init__(self, prefix):
        self.prefix = prefix

    def shuffle(self, seq):
        rest = [x for x in seq if x not in self.prefix]
        seq[:] = list(self.prefix) + rest


# ---------- Constraint checker ----------


def test_placement_rejects_row_column_and_box():
    grid = [0] * CELLS
    grid[0] = 5
    assert not is_valid_placement(grid, 8, 5)
    assert not is_valid_placement(grid, 72, 5)
    assert not is_valid_placement(grid, 20, 5)
    assert is_valid_placement(grid, 40, 5)
    assert is_valid_placement(grid, 8, 6)


def test_placement_is_repeatable(solved_grid):
    grid = list(solved_grid)
    grid[40] = 0
    value = solved_grid[40]
    assert [is_valid_placement(grid, 40, value) for _ in range(5)] == [True] * 5
    other = solved_grid[41]
    assert [is_valid_placement(grid, 40, other) for _ in range(5)] == [False] * 5
    assert grid == [0 if i == 40 else v for i, v in enumerate(solved_grid)]


# ---------- Candidate finder ----------


def test_find_empty_cell_on_full_grid(solved_grid):
    assert find_empty_cell(list(solved_grid)) == (-1, None)


def test_find_empty_cell_prefers_forced_cell(solved_grid):
    grid = list(solved_grid)
    grid[0] = 0
    for i in range(60, CELLS):
        grid[i] = 0
    idx, candidates = find_empty_cell(grid)
    assert idx == 0
    assert candidates == [solved_grid[0]]


def test_find_empty_cell_returns_dead_end_immediately():
    grid = [0] * CELLS
    grid[0:8] = [1, 2, 3, 4, 5, 6, 7, 8]
    grid[5 * 9 + 8] = 9
    idx, candidates = find_empty_cell(grid)
    assert idx == 8
    assert candidates == []


def test_candidates_on_empty_grid():
    assert get_candidates([0] * CELLS, 40) == list(range(1, 10))


# ---------- Solver ----------


def test_solve_fills_empty_grid():
    grid = [0] * CELLS
    assert solve(grid, random.Random(3))
    assert 0 not in grid
    assert_valid_solution(grid)


def test_solve_is_reproducible_with_seed():
    assert generate_solved_grid(random.Random(99)) == generate_solved_grid(random.Random(99))


def test_solve_keeps_existing_values(solved_grid):
    grid = list(solved_grid)
    for i in range(0, CELLS, 2):
        grid[i] = 0
    assert solve(grid, random.Random(5))
    assert_valid_solution(grid)
    for i in range(1, CELLS, 2):
        assert grid[i] == solved_grid[i]


def test_solve_without_candidates_leaves_grid_untouched():
    grid = [0] * CELLS
    grid[0:8] = [1, 2, 3, 4, 5, 6, 7, 8]
    grid[5 * 9 + 8] = 9
    before = list(grid)
    assert solve(grid, random.Random(0)) is False
    assert grid == before


def test_solve_unwinds_deeper_contradiction():
    # row 0 needs 9 at cell 8 or 7, but 9 is blocked in both columns
    grid = [0] * CELLS
    grid[0:7] = [1, 2, 3, 4, 5, 6, 7]
    grid[3 * 9 + 7] = 9
    grid[6 * 9 + 8] = 9
    before = list(grid)
    assert solve(grid, random.Random(0)) is False
    assert grid == before


# ---------- Solution counter ----------


def test_count_complete_grid_is_one(solved_grid):
    assert count_solutions(list(solved_grid), 2) == 1


def test_count_single_hole_is_unique(solved_grid):
    for idx in (0, 40, 80):
        grid = list(solved_grid)
        grid[idx] = 0
        assert count_solutions(grid, 2) == 1
        assert grid[idx] == 0


def test_count_contradictory_grid_is_zero():
    grid = [0] * CELLS
    grid[0:8] = [1, 2, 3, 4, 5, 6, 7, 8]
    grid[5 * 9 + 8] = 9
    assert count_solutions(grid, 2) == 0


def test_count_stops_at_limit():
    grid = [0] * CELLS
    assert count_solutions(grid, 2) == 2
    assert grid == [0] * CELLS


def test_count_detects_swappable_pair():
    grid = band_with_swappable_pair()
    puzzle = list(grid)
    for idx in (0, 3, 9, 12):
        puzzle[idx] = 0
    before = list(puzzle)
    assert count_solutions(puzzle, 2) == 2
    assert puzzle == before


# ---------- Carver ----------


def test_carver_restores_removal_that_breaks_uniqueness():
    solution = band_with_swappable_pair()
    carved = remove_cells_for_puzzle(solution, "easy", FixedOrder([0, 3, 9, 12]))
    puzzle = carved.puzzle
    assert puzzle[0] == puzzle[3] == puzzle[9] == 0
    assert puzzle[12] == solution[12]
    assert count_solutions(list(puzzle), 2) == 1


def test_carver_reaches_target_and_keeps_solution(solved_grid):
    before = list(solved_grid)
    puzzle, removed = remove_cells_for_puzzle(solved_grid, "easy", random.Random(8))
    assert solved_grid == before
    assert removed == CELLS - clues_for_difficulty("easy")
    assert puzzle.count(0) == removed
    assert all(p in (0, s) for p, s in zip(puzzle, solved_grid))
    assert count_solutions(list(puzzle), 2) == 1


def test_clue_table():
    assert clues_for_difficulty("easy") == 40
    assert clues_for_difficulty("medium") == 34
    assert clues_for_difficulty("hard") == 28
    with pytest.raises(ValueError):
        clues_for_difficulty("extreme")


# ---------- Generator ----------


@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_generated_puzzle_properties(difficulty):
    puzzle, solution, given = generate_puzzle(difficulty, random.Random(2024))

    assert_valid_solution(solution)
    assert count_solutions(list(puzzle), 2) == 1
    for i in range(CELLS):
        assert given[i] == (puzzle[i] != 0)
        if given[i]:
            assert puzzle[i] == solution[i]
    assert sum(given) >= clues_for_difficulty(difficulty)

    completed = list(puzzle)
    assert solve(completed, random.Random(1))
    assert completed == solution


def test_generation_is_reproducible_with_seed():
    first = generate_puzzle("medium", random.Random(42))
    second = generate_puzzle("medium", random.Random(42))
    assert first == second


def test_easy_has_more_clues_than_hard_on_average():
    trials = 3
    easy = sum(sum(generate_puzzle("easy", random.Random(s)).given) for s in range(trials))
    hard = sum(sum(generate_puzzle("hard", random.Random(s)).given) for s in range(trials))
    assert easy >= hard


def test_generator_falls_back_when_target_is_unreachable(monkeypatch, caplog):
    import sudoku_generator

    calls = []
    real = sudoku_generator.remove_cells_for_puzzle

    def short_carve(solution, difficulty, rng=None):
        calls.append(difficulty)
        puzzle, removed = real(solution, "easy", rng)
        return puzzle, 0

    monkeypatch.setattr(sudoku_generator, "remove_cells_for_puzzle", short_carve)
    with caplog.at_level("WARNING", logger="sudoku_generator"):
        puzzle, solution, given = generate_puzzle("hard", random.Random(7))
    assert len(calls) == sudoku_generator.MAX_ATTEMPTS + 1
    assert count_solutions(list(puzzle), 2) == 1
    assert given == [v != 0 for v in puzzle]
    assert board_string(puzzle) in caplog.text


def test_board_string_marks_empty_cells(solved_grid):
    grid = list(solved_grid)
    grid[0] = 0
    text = board_string(grid)
    lines = text.splitlines()
    assert len(lines) == 13
    assert lines[0] == "+-------+-------+-------+"
    assert lines[1].startswith("| .")
