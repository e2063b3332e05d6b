"""Pytest configuration and fixtures."""

from __future__ import annotations

import random
from functools import partial
from typing import Optional

import pytest

from contract_ids import issue_contract_id
from fakes import FakeSupabase, FakeTable, loans_table
from gateway import LoanGateway
from ledger import LoanLedger
from rbac import Actor
from schema_adapter import NamingMode, StoreProfile


@pytest.fixture
def rng() -> random.Random:
    """Fixed seed for reproducible ids."""
    return random.Random(42)


@pytest.fixture
def actor() -> Actor:
    return Actor(user_id="8c1f4f3e-0000-4000-8000-000000000001", email="lender@example.com")


@pytest.fixture
def sb() -> FakeSupabase:
    client = FakeSupabase()
    client.add_table(FakeTable("audit_log", columns={"created_at", "action", "status", "details", "actor_user_id"}))
    return client


@pytest.fixture
def make_gateway(sb, rng):
    def _make(mode: NamingMode = NamingMode.CAMEL, pk: Optional[str] = None, profile: Optional[StoreProfile] = None):
        table = sb.add_table(loans_table(mode, pk))
        gw = LoanGateway(sb, profile=profile or StoreProfile(), issue_id=partial(issue_contract_id, rng=rng))
        return gw, table
    return _make


@pytest.fixture
def make_ledger(make_gateway, actor):
    def _make(mode: NamingMode = NamingMode.CAMEL, pk: Optional[str] = None, who: Optional[Actor] = actor):
        gw, table = make_gateway(mode, pk)
        return LoanLedger(gw, actor=who), table
    return _make


@pytest.fixture(autouse=True)
def _fresh_audit_cache():
    from audit import clear_column_cache

    clear_column_cache()
    yield
    clear_column_cache()
