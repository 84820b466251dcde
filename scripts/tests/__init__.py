"""Live Firestore checks.

These talk to a real database or the local emulator and are not part of the
unit suite in `tests/`. See `test_firestore.py` for the environment they need.
"""
