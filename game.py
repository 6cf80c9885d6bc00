import logging
import random
from collections import namedtuple

logger = logging.getLogger(__name__)

SIZE = 9
BOX = 3

# Revealed cells out of 81 for each level.
DIFFICULTY_REVEAL_COUNTS = {
    'easy': 40,
    'medium': 30,
    'hard': 25,
}

NewGame = namedtuple('NewGame', ['solution', 'puzzle', 'fixed'])


class SudokuError(Exception):
    """Base exception for errors raised by the sudoku core."""


class PreconditionError(SudokuError, ValueError):
    """Raised when a caller passes a position, digit or level the core
    does not accept, or tries to edit a fixed cell.
    """


class GenerationError(SudokuError):
    """Raised when the solver cannot complete a seeded grid. This never
    happens for a correct diagonal seeding, so it signals a defect rather
    than anything the player did.
    """


def empty_board():
    return [[0 for _ in range(SIZE)] for _ in range(SIZE)]


def copy_board(board):
    return [row[:] for row in board]


def _check_position(row, col):
    if not (0 <= row < SIZE and 0 <= col < SIZE):
        raise PreconditionError(f"Position ({row}, {col}) is outside the grid")


def _check_digit(num):
    if not 1 <= num <= SIZE:
        raise PreconditionError(f"Digit must be 1-9, got {num}")


def reveal_count(level):
    try:
        return DIFFICULTY_REVEAL_COUNTS[str(level).lower()]
    except KeyError:
        raise PreconditionError(f"Unknown difficulty: {level!r}") from None


def is_valid_placement(board, row, col, num):
    """Return False if num already sits in the row, column or box of
    (row, col). The cell itself is not special-cased, so callers clear it
    before asking.
    """
    _check_position(row, col)
    _check_digit(num)

    # Check row
    for j in range(SIZE):
        if board[row][j] == num:
            return False

    # Check column
    for i in range(SIZE):
        if board[i][col] == num:
            return False

    # Check box
    box_row = (row // BOX) * BOX
    box_col = (col // BOX) * BOX
    for i in range(box_row, box_row + BOX):
        for j in range(box_col, box_col + BOX):
            if board[i][j] == num:
                return False
    return True


def find_empty(board):
    for i in range(SIZE):
        for j in range(SIZE):
            if board[i][j] == 0:
                return (i, j)  # row, col
    return None


def solve(board):
    """Complete board in place by depth-first search.

    Empty cells are taken in row-major order and digits tried from 1 to 9.
    Returns True once no empty cell is left. On False every cell this call
    filled has been reset to 0, so board is exactly as it was passed in.
    """
    find = find_empty(board)
    if not find:
        return True
    row, col = find

    for num in range(1, SIZE + 1):
        if is_valid_placement(board, row, col, num):
            board[row][col] = num

            if solve(board):
                return True

            board[row][col] = 0
    return False


def seed_diagonal(board, rng=random):
    # The boxes at (0,0), (3,3) and (6,6) share no row, column or box.
    for start in range(0, SIZE, BOX):
        nums = list(range(1, SIZE + 1))
        rng.shuffle(nums)
        for k, num in enumerate(nums):
            board[start + k // BOX][start + k % BOX] = num
    return board


def generate_solution(rng=random):
    board = empty_board()
    seed_diagonal(board, rng)
    if not solve(board):
        logger.error("Solver failed to complete a diagonal-seeded grid: %r", board)
        raise GenerationError("Could not complete a seeded grid")
    return board


def derive_puzzle(solution, reveal, rng=random):
    """Reveal `reveal` randomly chosen cells of solution.

    Returns (puzzle, fixed): puzzle holds the revealed digits and 0
    elsewhere, fixed is True exactly where a digit was revealed.
    """
    if not 0 <= reveal <= SIZE * SIZE:
        raise PreconditionError(f"Reveal count must be 0-81, got {reveal}")

    cells = [(r, c) for r in range(SIZE) for c in range(SIZE)]
    rng.shuffle(cells)

    puzzle = empty_board()
    fixed = [[False for _ in range(SIZE)] for _ in range(SIZE)]
    for r, c in cells[:reveal]:
        puzzle[r][c] = solution[r][c]
        fixed[r][c] = True
    return puzzle, fixed


class SudokuGenerator:
    def __init__(self, level='easy', seed=None):
        self.level = str(level).lower()
        self.reveal = reveal_count(self.level)
        self.seed = seed
        self.rng = random.Random(seed)
        self._generate_solution()

    def _generate_solution(self):
        logger.debug("Generating %s solution (seed=%r)", self.level, self.seed)
        self.solution = generate_solution(self.rng)

    def get_puzzle(self):
        return derive_puzzle(self.solution, self.reveal, self.rng)

    def get_solution(self):
        return copy_board(self.solution)


def new_game(difficulty='easy', seed=None):
    generator = SudokuGenerator(level=difficulty, seed=seed)
    puzzle, fixed = generator.get_puzzle()
    return NewGame(solution=generator.get_solution(), puzzle=puzzle, fixed=fixed)


def check_cell(solution, row, col, value):
    _check_position(row, col)
    return solution[row][col] == value


def is_complete(board):
    return all(all(cell != 0 for cell in row) for row in board)


def is_fully_correct(board, solution):
    # An empty cell never matches, so an incomplete board is never correct.
    return all(
        board[r][c] == solution[r][c]
        for r in range(SIZE) for c in range(SIZE)
    )


def reveal_solution(solution):
    return copy_board(solution)
