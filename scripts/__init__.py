"""Scripts package initialization.

Holds live checks that talk to a real Firestore database under
`scripts/tests`, kept apart from the unit tests in `tests/`.
"""

from __future__ import annotations

__all__: list[str] = []
