"""
Pytest configuration file.

Ensures the repo root is on sys.path so that 'import ledger_bench' works
without installing the package, and forces a headless matplotlib backend.
"""
import os
import sys
import uuid
from pathlib import Path

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def simulated_config():
    """Build a simulated-backend config with a deployment name unique to the test."""

    def build(**overrides):
        options = {
            "deployment": f"test-{uuid.uuid4().hex}",
            "commit_delay_ms": 0,
            "failure_rate": 0.0,
            "seed": 1,
            "contracts": [{"id": "simple", "version": "v0"}],
        }
        options.update(overrides)
        return {"simulated": options}

    return build
