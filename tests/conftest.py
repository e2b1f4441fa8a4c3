"""Shared test fixtures for emaktab_shot.

  conn        — initialised sqlite credential store in tmp_path
  make_cred   — helper that inserts a credential and returns it
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

from emaktab_shot.credential_store import connect, create_credential, init_db  # noqa: E402


@pytest.fixture()
def conn(tmp_path: Path):
    c = connect(tmp_path / "store" / "test.sqlite")
    init_db(c)
    yield c
    c.close()


@pytest.fixture()
def make_cred(conn):
    def _make(name: str, login: str, password: str = "pw"):
        return create_credential(conn, name=name, login=login, password=password)

    return _make
