"""
Pytest configuration and fixtures for Warden tests.

This module provides shared fixtures used across unit and integration
tests: Casbin model/policy files, a populated enforcer and a mocked one.
"""

import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

from warden.enforcer import CasbinEnforcer, PolicyEnforcer, default_model_text

SAMPLE_POLICY_CSV = """\
p, alice, USER, read
p, admin, USER_ROLES, read
p, bob, DOC:own, update
p, bob, DOC, read
g, carol, admin
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def model_path(temp_dir: Path) -> Path:
    """Write the bundled RBAC model to a file."""
    path = temp_dir / "model.conf"
    path.write_text(default_model_text())
    return path


@pytest.fixture
def policy_path(temp_dir: Path) -> Path:
    """Write the sample policy to a CSV file."""
    path = temp_dir / "policy.csv"
    path.write_text(SAMPLE_POLICY_CSV)
    return path


@pytest.fixture
def enforcer() -> CasbinEnforcer:
    """In-memory enforcer holding the sample policy."""
    enforcer = CasbinEnforcer.default()
    enforcer.add_policy("alice", "USER", "read")
    enforcer.add_policy("admin", "USER_ROLES", "read")
    enforcer.add_policy("bob", "DOC:own", "update")
    enforcer.add_policy("bob", "DOC", "read")
    enforcer.add_grouping_policy("carol", "admin")
    return enforcer


@pytest.fixture
def mock_enforcer() -> MagicMock:
    """A PolicyEnforcer mock that allows everything by default."""
    mock = MagicMock(spec=PolicyEnforcer)
    mock.enforce.return_value = True
    return mock


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a config YAML using the sample policy next to it."""
    return """
policy: ./policy.csv
operations:
  users.list:
    - action: read
      resource: USER
  users.roles:
    - action: read
      resource: USER
    - action: read
      resource: USER_ROLES
  docs.update:
    - action: update
      resource: DOC
      possession: own
      owner_check: owner_id
  health: []
"""


@pytest.fixture
def config_path(temp_dir: Path, policy_path: Path, sample_config_yaml: str) -> Path:
    """Write the sample config next to the sample policy."""
    path = temp_dir / "warden.yaml"
    path.write_text(sample_config_yaml)
    return path
