"""CLI wrapper: ``python scripts/backfill_club_location.py --club 1 --location 1``."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dojodesk.backfill import main  # noqa: E402

if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
