import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from sudoku_generator import BOX, CELLS, SIZE, Grid, generate_puzzle

MAX_HINTS = 3

PROGRESS_WRONG = "Some entries are wrong."
PROGRESS_INCOMPLETE = "Correct so far. There are still empty cells."
PROGRESS_SOLVED = "Everything is correct!"


@dataclass(frozen=True)
class Move:
    index: int
    prev_value: int
    next_value: int
    prev_notes: str
    next_notes: str


@dataclass(frozen=True)
class GameHistoryEntry:
    id: str
    difficulty: str
    started_at: float
    completed_at: float
    duration_sec: int


@dataclass(frozen=True)
class GameState:
    id: str
    difficulty: str
    puzzle: Grid
    solution: Grid
    given: List[bool]
    entries: Grid
    notes: List[str]
    hints_left: int = MAX_HINTS
    started_at: float = 0.0
    undo_stack: Tuple[Move, ...] = field(default_factory=tuple)
    redo_stack: Tuple[Move, ...] = field(default_factory=tuple)
    completed: bool = False
    completed_at: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "GameState":
        data = dict(data)
        data["undo_stack"] = tuple(Move(**m) for m in data.get("undo_stack", ()))
        data["redo_stack"] = tuple(Move(**m) for m in data.get("redo_stack", ()))
        return cls(**data)


def _check_index(index: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < CELLS:
        raise ValueError(f"cell index out of range: {index!r}")


def _check_value(value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= SIZE:
        raise ValueError(f"cell value out of range: {value!r}")


def new_game(difficulty: str, rng=None, now: Optional[float] = None,
             max_hints: int = MAX_HINTS) -> GameState:
    puzzle, solution, given = generate_puzzle(difficulty, rng)
    return GameState(
        id=f"game_{uuid.uuid4().hex}",
        difficulty=difficulty,
        puzzle=puzzle,
        solution=solution,
        given=given,
        entries=list(puzzle),
        notes=[""] * CELLS,
        hints_left=max_hints,
        started_at=time.time() if now is None else now,
    )


def toggle_note(notes: str, value: int) -> str:
    marks = set(notes)
    digit = str(value)
    if digit in marks:
        marks.discard(digit)
    else:
        marks.add(digit)
    return "".join(sorted(marks))


def apply_move(state: GameState, index: int, next_value: int,
               next_notes: str) -> Optional[GameState]:
    """Record an edit of one cell. None when the cell is a clue or nothing changes."""
    _check_index(index)
    _check_value(next_value)
    if state.given[index]:
        return None
    prev_value = state.entries[index]
    prev_notes = state.notes[index]
    if prev_value == next_value and prev_notes == next_notes:
        return None

    entries = list(state.entries)
    notes = list(state.notes)
    entries[index] = next_value
    notes[index] = next_notes
    move = Move(index, prev_value, next_value, prev_notes, next_notes)
    return replace(
        state,
        entries=entries,
        notes=notes,
        undo_stack=state.undo_stack + (move,),
        redo_stack=(),
    )


def enter_number(state: GameState, index: int, value: int,
                 note_mode: bool = False) -> Optional[GameState]:
    _check_index(index)
    if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= SIZE:
        raise ValueError(f"cell value out of range: {value!r}")
    if note_mode:
        # pencil marks only go on empty cells
        if state.entries[index] != 0:
            return None
        return apply_move(state, index, 0, toggle_note(state.notes[index], value))
    return apply_move(state, index, value, "")


def erase(state: GameState, index: int) -> Optional[GameState]:
    _check_index(index)
    if state.entries[index] == 0 and not state.notes[index]:
        return None
    return apply_move(state, index, 0, "")


def use_hint(state: GameState, index: int) -> Optional[GameState]:
    _check_index(index)
    if state.hints_left <= 0 or state.entries[index] != 0:
        return None
    moved = apply_move(state, index, state.solution[index], "")
    if moved is None:
        return None
    return replace(moved, hints_left=max(0, moved.hints_left - 1))


def undo(state: GameState) -> Optional[GameState]:
    if not state.undo_stack:
        return None
    last = state.undo_stack[-1]
    entries = list(state.entries)
    notes = list(state.notes)
    entries[last.index] = last.prev_value
    notes[last.index] = last.prev_notes
    return replace(
        state,
        entries=entries,
        notes=notes,
        undo_stack=state.undo_stack[:-1],
        redo_stack=state.redo_stack + (last,),
    )


def redo(state: GameState) -> Optional[GameState]:
    if not state.redo_stack:
        return None
    last = state.redo_stack[-1]
    entries = list(state.entries)
    notes = list(state.notes)
    entries[last.index] = last.next_value
    notes[last.index] = last.next_notes
    return replace(
        state,
        entries=entries,
        notes=notes,
        undo_stack=state.undo_stack + (last,),
        redo_stack=state.redo_stack[:-1],
    )


def _groups() -> List[List[int]]:
    rows = [[r * SIZE + c for c in range(SIZE)] for r in range(SIZE)]
    cols = [[r * SIZE + c for r in range(SIZE)] for c in range(SIZE)]
    boxes = [
        [(br * BOX + r) * SIZE + bc * BOX + c for r in range(BOX) for c in range(BOX)]
        for br in range(BOX)
        for bc in range(BOX)
    ]
    return rows + cols + boxes


GROUPS = _groups()


def compute_conflicts(entries: Grid) -> List[bool]:
    """Mark every filled cell whose value repeats within a row, column or box."""
    conflicts = [False] * CELLS
    for group in GROUPS:
        seen: Dict[int, List[int]] = {}
        for idx in group:
            value = entries[idx]
            if value:
                seen.setdefault(value, []).append(idx)
        for cells in seen.values():
            if len(cells) > 1:
                for idx in cells:
                    conflicts[idx] = True
    return conflicts


def is_solved(entries: Grid, solution: Grid) -> bool:
    return all(v != 0 and v == s for v, s in zip(entries, solution))


def evaluate_progress(entries: Grid, solution: Grid) -> str:
    has_wrong = any(v != 0 and v != s for v, s in zip(entries, solution))
    if has_wrong:
        return PROGRESS_WRONG
    if any(v == 0 for v in entries):
        return PROGRESS_INCOMPLETE
    return PROGRESS_SOLVED


def number_counts(entries: Grid) -> List[int]:
    counts = [0] * SIZE
    for v in entries:
        if 1 <= v <= SIZE:
            counts[v - 1] += 1
    return counts


def complete_game(state: GameState, now: Optional[float] = None) -> Tuple[GameState, GameHistoryEntry]:
    completed_at = time.time() if now is None else now
    duration = max(0, int(completed_at - state.started_at))
    entry = GameHistoryEntry(
        id=state.id,
        difficulty=state.difficulty,
        started_at=state.started_at,
        completed_at=completed_at,
        duration_sec=duration,
    )
    return replace(state, completed=True, completed_at=completed_at), entry


def format_duration(seconds: int) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"
