import os
import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'mdtransclude'
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


from mdtransclude.core.log import reset_logging_for_tests  # noqa: E402
from mdtransclude.data import clear_caches  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    """Drop MDTRANSCLUDE_* variables and logging handlers leaking between tests."""
    for key in list(os.environ):
        if key.startswith("MDTRANSCLUDE_"):
            monkeypatch.delenv(key, raising=False)
    clear_caches()
    yield
    reset_logging_for_tests()


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative_path: content}`` under tmp_path and return the root.

    Example:
        root = write_tree({"main.md": "![[a]]", "a.md": "A"})
    """

    def _write(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _write
