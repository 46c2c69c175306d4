import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import credproof`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from credproof.circuit import RelationInputs  # noqa: E402
from credproof.config import ConfigManager  # noqa: E402


# 2000-01-01T00:00:00Z and 2020-01-01T00:00:00Z: exactly 20 Julian years apart
BIRTH_2000 = 946684800
CURRENT_2020 = 1577836800

US = 21843
SUBJECT = 0x5B38DA6A701C568545DCFCB03FCB875F56BEDDC4


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "perf: performance/benchmark tests (skipped unless CREDPROOF_RUN_PERF=1)",
    )
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless CREDPROOF_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_perf = _env_flag('CREDPROOF_RUN_PERF')
    run_slow = _env_flag('CREDPROOF_RUN_SLOW')

    for item in items:
        if 'perf' in item.keywords and not run_perf:
            item.add_marker(pytest.mark.skip(reason='perf tests skipped; set CREDPROOF_RUN_PERF=1 to enable'))
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set CREDPROOF_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch):
    """Every test starts from default configuration with no CREDPROOF_* overrides."""
    for name in list(os.environ):
        if name.startswith('CREDPROOF_') and not name.startswith('CREDPROOF_RUN_'):
            monkeypatch.delenv(name, raising=False)
    ConfigManager().reset()
    yield
    ConfigManager().reset()


@pytest.fixture
def make_inputs():
    """Factory for relation inputs where every check holds, with overrides."""
    def _make(**overrides) -> RelationInputs:
        values = {
            "current_date": CURRENT_2020,
            "min_age": 18,
            "required_citizenship": US,
            "issuer_a_pubkey_x": 1111,
            "issuer_a_pubkey_y": 2222,
            "issuer_b_pubkey_x": 3333,
            "issuer_b_pubkey_y": 4444,
            "subject_pubkey": SUBJECT,
            "subject_wallet": SUBJECT,
            "birth_timestamp": BIRTH_2000,
            "citizenship_code": US,
            "sig_a_r": 5555,
            "sig_a_s": 6666,
            "sig_b_r": 7777,
            "sig_b_s": 8888,
            "nonce_a": 99,
            "nonce_b": 100,
        }
        values.update(overrides)
        return RelationInputs(**values)
    return _make
