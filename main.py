import os

ASYNC_MODE = os.environ.get('SUDOKU_ASYNC_MODE', 'eventlet')
if ASYNC_MODE == 'eventlet':
    import eventlet
    eventlet.monkey_patch()

import logging
import time
import uuid

from flask import Flask, request, jsonify
from flask_socketio import SocketIO, emit, join_room
from flask_cors import CORS, cross_origin

from game import (
    PreconditionError,
    SIZE,
    check_cell,
    copy_board,
    is_complete,
    is_fully_correct,
    new_game,
    reveal_solution,
)

LOG_LEVEL = os.environ.get('SUDOKU_LOG_LEVEL', 'INFO').upper()
CORS_ORIGINS = os.environ.get('SUDOKU_CORS_ORIGINS', '*')
if CORS_ORIGINS != '*':
    CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGINS.split(',')]
DEFAULT_DIFFICULTY = 'easy'
# Seconds an unjoined game is kept before it is dropped.
GAME_TTL = int(os.environ.get('SUDOKU_GAME_TTL', 60 * 60))

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app, origins=CORS_ORIGINS)
socketio = SocketIO(app, cors_allowed_origins=CORS_ORIGINS, async_mode=ASYNC_MODE)

games = {}


class GameState:
    def __init__(self, puzzle, solution, fixed, difficulty):
        self.puzzle = puzzle
        self.solution = solution
        self.fixed = fixed
        self.difficulty = difficulty
        # Player edits go here; puzzle and fixed are never written after creation.
        self.current_board = copy_board(puzzle)
        self.solved = False
        self.won = False
        self.sids = set()
        self.created_at = time.time()

    def to_dict(self):
        data = {
            "puzzle": self.puzzle,
            "fixed": self.fixed,
            "current_board": self.current_board,
            "difficulty": self.difficulty,
            "solved": self.solved,
            "won": self.won,
        }
        if self.solved:
            data["solution"] = reveal_solution(self.solution)
        return data


def _prune_games():
    cutoff = time.time() - GAME_TTL
    for game_id, gs in list(games.items()):
        if not gs.sids and gs.created_at < cutoff:
            del games[game_id]
            logger.info("Dropped idle game %s", game_id)


def _find_game(data):
    if not isinstance(data, dict):
        emit('error', {"message": "Payload must be an object"}, to=request.sid)
        return None, None
    game_id = data.get('game_id')
    gs = games.get(game_id) if isinstance(game_id, str) else None
    if gs is None:
        emit('error', {"message": "Game not found"}, to=request.sid)
    return game_id, gs


def _validate_move(gs, r, c, value):
    if gs.solved:
        raise PreconditionError("Game has already been solved")
    if gs.won:
        raise PreconditionError("Game has already been won")
    for name, v in (("row", r), ("col", c), ("value", value)):
        if not isinstance(v, int) or isinstance(v, bool):
            raise PreconditionError(f"{name} must be an integer")
    if not (0 <= r < SIZE and 0 <= c < SIZE):
        raise PreconditionError(f"Position ({r}, {c}) is outside the grid")
    if not 0 <= value <= SIZE:
        raise PreconditionError(f"Value must be 0-9, got {value}")
    if gs.fixed[r][c]:
        raise PreconditionError("Cannot change a fixed cell")


def _check_result(gs):
    complete = is_complete(gs.current_board)
    correct = complete and is_fully_correct(gs.current_board, gs.solution)
    if correct:
        message = "Congratulations! The puzzle is solved."
    elif complete:
        message = "The board is full but some cells are wrong."
    else:
        message = "The board is not complete yet."
    return {"complete": complete, "correct": correct, "message": message}


@app.route("/")
def index():
    return "Sudoku backend is running!"


@app.route("/new_game", methods=['POST'])
@cross_origin()
def create_game():
    try:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        difficulty = data.get('difficulty', DEFAULT_DIFFICULTY)
        seed = data.get('seed')
        if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
            return jsonify({"error": "Seed must be an integer"}), 400

        try:
            solution, puzzle, fixed = new_game(difficulty, seed=seed)
        except PreconditionError as e:
            return jsonify({"error": str(e)}), 400

        _prune_games()
        game_id = str(uuid.uuid4())[:8]
        games[game_id] = GameState(puzzle, solution, fixed, str(difficulty).lower())
        logger.info("Created game %s (%s)", game_id, difficulty)

        return jsonify({
            "game_id": game_id,
            "difficulty": games[game_id].difficulty,
            "puzzle": puzzle,
            "fixed": fixed,
            "message": "Game created successfully"
        })
    except Exception as e:
        logger.exception("Failed to create game")
        return jsonify({"error": str(e)}), 500


@app.route("/games/<game_id>", methods=['GET'])
@cross_origin()
def get_game(game_id):
    gs = games.get(game_id)
    if gs is None:
        return jsonify({"error": "Game not found"}), 404
    return jsonify({"game_id": game_id, "game_state": gs.to_dict()})


@app.route("/games/<game_id>/check", methods=['POST'])
@cross_origin()
def check_game(game_id):
    gs = games.get(game_id)
    if gs is None:
        return jsonify({"error": "Game not found"}), 404
    return jsonify(_check_result(gs))


@app.route("/games/<game_id>/solve", methods=['POST'])
@cross_origin()
def solve_game(game_id):
    gs = games.get(game_id)
    if gs is None:
        return jsonify({"error": "Game not found"}), 404
    gs.solved = True
    logger.info("Revealed solution for game %s", game_id)
    return jsonify({"solution": reveal_solution(gs.solution)})


@socketio.on('join')
def on_join(data):
    game_id, gs = _find_game(data)
    if gs is None:
        return

    join_room(game_id)
    gs.sids.add(request.sid)
    emit('game_state_update', {"game_state": gs.to_dict()}, to=request.sid)


@socketio.on('move')
def on_move(data):
    game_id, gs = _find_game(data)
    if gs is None:
        return

    r, c, value = data.get("row"), data.get("col"), data.get("value")
    try:
        _validate_move(gs, r, c, value)
    except PreconditionError as e:
        emit('error', {"message": str(e)}, to=request.sid)
        return

    gs.current_board[r][c] = value
    is_correct = None if value == 0 else check_cell(gs.solution, r, c, value)

    emit('cell_checked', {
        "row": r, "col": c, "value": value, "is_correct": is_correct
    }, to=request.sid)

    if is_complete(gs.current_board) and is_fully_correct(gs.current_board, gs.solution):
        gs.won = True
        logger.info("Game %s won", game_id)
        emit('game_won', {"game_id": game_id, "message": "Puzzle solved!"}, to=game_id)


@socketio.on('check_solution')
def on_check_solution(data):
    _, gs = _find_game(data)
    if gs is None:
        return
    emit('solution_checked', _check_result(gs), to=request.sid)


@socketio.on('solve')
def on_solve(data):
    _, gs = _find_game(data)
    if gs is None:
        return
    gs.solved = True
    emit('solution_revealed', {"solution": reveal_solution(gs.solution)}, to=request.sid)


@socketio.on('disconnect')
def on_disconnect(reason=None):
    for game_id, gs in list(games.items()):
        if request.sid not in gs.sids:
            continue
        gs.sids.discard(request.sid)
        if not gs.sids:
            del games[game_id]
            logger.info("Dropped game %s after its last client left", game_id)


if __name__ == '__main__':
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    socketio.run(app, debug=True)
