import os
from dotenv import load_dotenv
from flask import Flask, request, session, jsonify, abort

import game as rules
import storage

load_dotenv()

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-secret")
app.config["DB_PATH"] = os.getenv(
    "SUDOKU_DB_PATH", os.path.join(os.path.dirname(__file__), "sudoku.db")
)
app.config["MAX_HINTS"] = int(os.getenv("SUDOKU_MAX_HINTS", str(rules.MAX_HINTS)))

LEVELS = ("easy", "medium", "hard")


@app.before_request
def startup():
    path = app.config["DB_PATH"]
    if app.config.get("_db_initialized") != path:
        storage.init_db(path)
        app.config["_db_initialized"] = path


@app.errorhandler(400)
@app.errorhandler(404)
def json_error(e):
    return jsonify({"error": e.description}), e.code


def game_view(state, changed=True):
    view = {
        "id": state.id,
        "difficulty": state.difficulty,
        "puzzle": state.puzzle,
        "given": state.given,
        "entries": state.entries,
        "notes": state.notes,
        "conflicts": rules.compute_conflicts(state.entries),
        "number_counts": rules.number_counts(state.entries),
        "hints_left": state.hints_left,
        "completed": state.completed,
        "can_undo": bool(state.undo_stack),
        "can_redo": bool(state.redo_stack),
        "changed": changed,
    }
    if state.completed:
        view["solution"] = state.solution
    return view


def load_active(game_id):
    state = storage.load_game(app.config["DB_PATH"], game_id)
    if state is None:
        abort(404, description="game not found")
    return state


def cell_index(payload):
    index = payload.get("index")
    if not isinstance(index, int) or isinstance(index, bool):
        abort(400, description="index must be an integer")
    return index


def commit(state, next_state):
    """Persist an edit, finishing the game when the grid is solved."""
    if next_state is None:
        return jsonify(game_view(state, changed=False))
    path = app.config["DB_PATH"]
    if rules.is_solved(next_state.entries, next_state.solution):
        next_state, entry = rules.complete_game(next_state)
        storage.append_history(path, entry)
        storage.delete_game(path, next_state.id)
        if session.get("game_id") == next_state.id:
            session.pop("game_id", None)
        app.logger.info("game %s completed in %s", entry.id,
                        rules.format_duration(entry.duration_sec))
    else:
        storage.save_game(path, next_state)
    return jsonify(game_view(next_state))


def edit(game_id, op):
    state = load_active(game_id)
    try:
        next_state = op(state)
    except ValueError as e:
        abort(400, description=str(e))
    return commit(state, next_state)


@app.route("/api/games", methods=["POST"])
def api_new_game():
    payload = request.get_json(silent=True) or {}
    level = str(payload.get("level") or request.args.get("level", "easy")).lower()
    if level not in LEVELS:
        level = "easy"
    state = rules.new_game(level, max_hints=app.config["MAX_HINTS"])
    storage.save_game(app.config["DB_PATH"], state)
    session["game_id"] = state.id
    app.logger.info("new %s game %s with %d clues", level, state.id, sum(state.given))
    return jsonify(game_view(state)), 201


@app.route("/api/games/current")
def api_current_game():
    game_id = session.get("game_id")
    state = storage.load_game(app.config["DB_PATH"], game_id) if game_id else None
    if state is None:
        abort(404, description="no game in progress")
    return jsonify(game_view(state, changed=False))


@app.route("/api/games/<game_id>/number", methods=["POST"])
def api_number(game_id):
    payload = request.get_json(silent=True) or {}
    index = cell_index(payload)
    value = payload.get("value")
    note_mode = bool(payload.get("note_mode", False))
    return edit(game_id, lambda s: rules.enter_number(s, index, value, note_mode))


@app.route("/api/games/<game_id>/erase", methods=["POST"])
def api_erase(game_id):
    index = cell_index(request.get_json(silent=True) or {})
    return edit(game_id, lambda s: rules.erase(s, index))


@app.route("/api/games/<game_id>/hint", methods=["POST"])
def api_hint(game_id):
    index = cell_index(request.get_json(silent=True) or {})
    return edit(game_id, lambda s: rules.use_hint(s, index))


@app.route("/api/games/<game_id>/undo", methods=["POST"])
def api_undo(game_id):
    return edit(game_id, rules.undo)


@app.route("/api/games/<game_id>/redo", methods=["POST"])
def api_redo(game_id):
    return edit(game_id, rules.redo)


@app.route("/api/games/<game_id>/check")
def api_check(game_id):
    state = load_active(game_id)
    return jsonify({"message": rules.evaluate_progress(state.entries, state.solution)})


@app.route("/api/history")
def api_history():
    entries = storage.load_history(app.config["DB_PATH"])
    return jsonify([
        {
            "id": e.id,
            "difficulty": e.difficulty,
            "started_at": e.started_at,
            "completed_at": e.completed_at,
            "duration_sec": e.duration_sec,
            "duration": rules.format_duration(e.duration_sec),
        }
        for e in entries
    ])


if __name__ == "__main__":
    app.run(debug=True)
