"""core package initialization.

Making `core` an explicit package so imports like `import core.tuning`
work reliably when running `main.py` or the tests from the project root.
"""

__all__ = ["collision", "constants", "events", "save", "tuning"]
