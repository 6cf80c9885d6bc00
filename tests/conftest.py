import os

# Must be set before main is imported; keeps eventlet from patching the test process.
os.environ.setdefault('SUDOKU_ASYNC_MODE', 'threading')
