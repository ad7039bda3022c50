"""Shared fixtures: temp DuckDB store, editor, resolver, fake rate source."""

import asyncio
import shutil
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from ticketrules.editor import BatchRuleEditor
from ticketrules.errors import RateUnavailableError
from ticketrules.resolver import Resolver
from ticketrules.storage import RuleStore


class FakeRateProvider:
    """In-memory rate source. Counts fetches; optional delay and failing pairs."""

    def __init__(self, rates=None, delay: float = 0.0):
        self.rates = {k: Decimal(str(v)) for k, v in (rates or {}).items()}
        self.delay = delay
        self.failing: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def fetch_rates(self, base, symbols):
        self.calls.append((base, symbols[0]))
        if self.delay:
            await asyncio.sleep(self.delay)
        out = {}
        for s in symbols:
            if (base, s) in self.failing:
                raise RateUnavailableError(f"{base}->{s} unavailable")
            if (base, s) in self.rates:
                out[s] = self.rates[(base, s)]
        return out

    async def aclose(self):
        self.closed = True


@pytest.fixture
def temp_store():
    tmp = tempfile.mkdtemp()
    store = RuleStore.open(Path(tmp) / "test.duckdb")
    yield store
    store.close()
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def editor(temp_store):
    return BatchRuleEditor(temp_store)


@pytest.fixture
def resolver(temp_store):
    return Resolver(temp_store)


@pytest.fixture
def fake_rates():
    return FakeRateProvider(
        {
            ("EUR", "USD"): "1.10",
            ("GBP", "AED"): "4.6500",
            ("USD", "AED"): "3.6725",
            ("USD", "EUR"): "0.90",
            ("GBP", "USD"): "1.27",
        }
    )


@pytest.fixture
def make_rates():
    return FakeRateProvider
