from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

for entry in (BASE_DIR, SRC_DIR):
    if str(entry) not in sys.path:
        sys.path.append(str(entry))


@pytest.fixture(autouse=True)
def _quiet_tracebacks(monkeypatch: pytest.MonkeyPatch) -> None:
    """Error reports stay one line unless a test opts in."""
    monkeypatch.delenv("PIPESHELL_DEBUG_PY_TRACE", raising=False)


@pytest.fixture
def interp():
    from pipeshell.runner import Interpreter

    return Interpreter()


def pytest_collection_modifyitems(
    session: pytest.Session,
    config: pytest.Config,
    items: List[pytest.Item],
) -> None:
    """Reject parametrized scenarios that reuse an id within one test."""
    del session
    del config

    counts: Dict[str, int] = {}
    for item in items:
        counts[item.nodeid] = counts.get(item.nodeid, 0) + 1

    duplicates = sorted(nodeid for nodeid, count in counts.items() if count > 1)
    if duplicates:
        lines = "\n".join(f"- {nodeid}" for nodeid in duplicates)
        raise pytest.UsageError(f"Duplicate scenario ids:\n{lines}")
