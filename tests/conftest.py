"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root and scripts/ to path so the package and CLI scripts are
# importable without installation
project_root = Path(__file__).parent.parent
for path in (project_root, project_root / "scripts"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import logging  # noqa: E402
import random  # noqa: E402

import pytest  # noqa: E402

from cat_service.core.cat.engine import CATSessionManager  # noqa: E402
from cat_service.core.cat.models import Item  # noqa: E402


def build_item_bank(n_items: int = 60, seed: int = 42) -> list[Item]:
    """Build an item bank with difficulties spread over [-2.5, 2.5].

    Two thirds of the items are 4-option multiple choice (c=0.25), the rest
    free response (c=0).
    """
    rng = random.Random(seed)
    bank = []
    for i in range(n_items):
        b = -2.5 + (i / (n_items - 1)) * 5.0
        a = 0.8 + rng.random() * 1.7
        c = 0.0 if i % 3 == 0 else 0.25
        bank.append(Item(id=i + 1, discrimination=a, difficulty=b, guessing=c))
    return bank


@pytest.fixture
def item_bank() -> list[Item]:
    return build_item_bank()


@pytest.fixture
def manager() -> CATSessionManager:
    return CATSessionManager(min_items=5, max_standard_error=0.35)


@pytest.fixture
def restore_logging():
    """Undo global logging changes made by setup_logging()."""
    root = logging.getLogger()
    package_logger = logging.getLogger("cat_service")
    saved = (
        root.level,
        list(root.handlers),
        package_logger.level,
        list(package_logger.handlers),
        package_logger.propagate,
    )
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    package_logger.setLevel(saved[2])
    package_logger.handlers[:] = saved[3]
    package_logger.propagate = saved[4]
