"""
Tests for PartnerMemoCache.
"""

from datetime import date

import pytest

from app.content.bundle import partner_key
from app.content.categories import MemoMode, OracleKind
from app.services.content_oracle import ContentOracleError
from app.services.partner_memo_cache import PartnerMemoCache
from app.services.validation import InputValidationError


@pytest.fixture
def memo_cache(oracle, profile_store):
    return PartnerMemoCache(oracle, profile_store)


def test_partner_key_normalizes_name():
    assert partner_key("  Jane ", "1992-08-20") == "jane_1992-08-20"
    assert partner_key("JANE", date(1992, 8, 20)) == "jane_1992-08-20"


@pytest.mark.asyncio
async def test_brief_and_full_are_independent_slots(memo_cache, oracle, make_profile):
    """brief, brief, full, full -> one call per mode."""
    profile = make_profile(is_premium=True)

    brief = await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    brief_again = await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    assert brief_again == brief
    assert oracle.count() == 1

    full = await memo_cache.get_or_generate(profile, "Jane", "1992-08-20", mode=MemoMode.FULL)
    assert oracle.count() == 1 + 1
    assert oracle.calls[-1]["kind"] is OracleKind.SYNASTRY_FULL
    assert full != brief

    await memo_cache.get_or_generate(profile, "Jane", "1992-08-20", mode=MemoMode.FULL)
    assert oracle.count() == 2

    slot = profile.bundle.partner_memos["jane_1992-08-20"]
    assert slot.brief == brief
    assert slot.full == full


@pytest.mark.asyncio
async def test_name_variants_hit_same_slot(memo_cache, oracle, make_profile):
    profile = make_profile()

    await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    await memo_cache.get_or_generate(profile, " jane ", "1992-08-20")

    assert oracle.count() == 1
    assert list(profile.bundle.partner_memos) == ["jane_1992-08-20"]


@pytest.mark.asyncio
async def test_different_birth_date_is_different_partner(memo_cache, oracle, make_profile):
    profile = make_profile()

    await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    await memo_cache.get_or_generate(profile, "Jane", "1993-08-20")

    assert oracle.count() == 2


@pytest.mark.asyncio
async def test_memo_is_persisted(memo_cache, profile_store, make_profile):
    profile = make_profile()

    memo = await memo_cache.get_or_generate(profile, "Jane", "1992-08-20", relationship_type="romantic")

    stored = profile_store.profiles["1001"]
    assert stored.bundle.partner_memos["jane_1992-08-20"].brief == memo


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name, birth_date, birth_time",
    [
        ("J", "1992-08-20", None),
        ("Jane", "20.08.1992", None),
        ("Jane", "2999-01-01", None),
        ("Jane", "1992-08-20", "25:00"),
    ],
)
async def test_invalid_partner_rejected_before_any_call(memo_cache, oracle, profile_store, make_profile, name, birth_date, birth_time):
    profile = make_profile()

    with pytest.raises(InputValidationError):
        await memo_cache.get_or_generate(profile, name, birth_date, birth_time)

    assert oracle.count() == 0
    assert profile_store.puts == 0


@pytest.mark.asyncio
async def test_oracle_failure_caches_nothing(memo_cache, oracle, profile_store, make_profile):
    oracle.fail_kinds = {OracleKind.SYNASTRY_BRIEF}
    profile = make_profile()

    with pytest.raises(ContentOracleError):
        await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")

    assert "jane_1992-08-20" not in profile.bundle.partner_memos
    assert profile_store.puts == 0

    oracle.fail_kinds = set()
    memo = await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    assert memo["summary"].startswith("synastry_brief for Jane")


@pytest.mark.asyncio
async def test_requires_chart(memo_cache, oracle, make_profile):
    profile = make_profile()
    profile.chart = None

    with pytest.raises(InputValidationError):
        await memo_cache.get_or_generate(profile, "Jane", "1992-08-20")
    assert oracle.count() == 0
