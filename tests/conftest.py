from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def clear_vertex_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials from leaking into adapter defaults."""

    monkeypatch.delenv("VERTEX_AI_API_KEY", raising=False)
    monkeypatch.delenv("VERTEX_AI_BASE_URL", raising=False)
