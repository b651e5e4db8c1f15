"""Shared pytest setup: golden-file parametrization and common fixtures."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)


def pytest_configure(config: Any) -> None:
    """Register the golden_test marker."""
    config.addinivalue_line(
        "markers",
        "golden_test(pattern): parameterize test with YAML files matching pattern",
    )


def _iter_marker_patterns(node: Any) -> Iterator[str]:
    """Yield pattern strings from golden_test markers on `node`."""
    for m in node.iter_markers(name="golden_test"):
        yield m.args[0] if m.args else "golden/*.yaml"


def _load_record(path: Path) -> dict[str, Any]:
    """Load one golden record, keeping load errors visible to the test."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        return {"__yaml_load_error__": str(e), "__path__": str(path)}
    if not isinstance(data, dict):
        return {"__yaml_load_error__": "record is not a mapping", "__path__": str(path)}
    data.setdefault("__path__", str(path))
    data.setdefault("__name__", path.name)
    return data


def pytest_generate_tests(metafunc: Any) -> None:
    """Generate tests (parametrization) from YAML golden files."""
    if "golden" not in metafunc.fixturenames:
        return

    patterns = list(_iter_marker_patterns(metafunc.definition)) or ["golden/*.yaml"]
    root = Path(metafunc.config.rootpath)

    files: list[Path] = []
    for pat in patterns:
        files.extend(sorted(root.glob(pat)))

    metafunc.parametrize(
        "golden",
        [_load_record(p) for p in files],
        ids=[p.name for p in files],
    )


@pytest.fixture
def tape() -> bytearray:
    """The conventional 30000-cell zeroed tape."""
    return bytearray(30000)


@pytest.fixture
def hello_world() -> str:
    return HELLO_WORLD
