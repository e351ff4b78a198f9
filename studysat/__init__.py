"""StudySAT package initialization.

Question-bank study tooling with cross-device progress and saved-quiz sync.
The application container lives in `studysat.app.study_app`; the merge core in
`studysat.sync.reconciler`.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
