from pathlib import Path

import pytest

import liftchain as lc

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(autouse=True)
def _restore_config():
    saved = dict(lc.CONFIG)
    yield
    lc.CONFIG.clear()
    lc.CONFIG.update(saved)


@pytest.fixture
def chain_file():
    return str(DATA_DIR / "test.chain")
