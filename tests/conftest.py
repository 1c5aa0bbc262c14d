from pathlib import Path

import pytest

from antibeaver.governance.engine import Governor
from antibeaver.governance.policy import GovernancePolicy
from antibeaver.storage.store import ThoughtStore


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "state" / "governance.db")


@pytest.fixture
def store(db_path: str):
    s = ThoughtStore(db_path)
    yield s
    s.close()


@pytest.fixture
def policy(db_path: str) -> GovernancePolicy:
    return GovernancePolicy(db_path=db_path)


@pytest.fixture
def governor(policy: GovernancePolicy):
    gov = Governor(policy)
    yield gov
    gov.close()
