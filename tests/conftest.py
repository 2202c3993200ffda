"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local blastradius package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of blastradius modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("blastradius"):
        del sys.modules[module_name]

from blastradius.core.logging import clear_run_id  # noqa: E402
from blastradius.store import FactStore  # noqa: E402


@pytest.fixture
def store() -> FactStore:
    return FactStore()


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: content}`` under tmp_path and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for rel_path, content in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return tmp_path

    return _write


@pytest.fixture(autouse=True)
def _reset_run_id() -> Iterator[None]:
    yield
    clear_run_id()
