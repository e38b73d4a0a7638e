import pytest

from app.core.payout import DEFAULT_COMMISSION_RATES
from app.services.commission_service import (
    COMMISSION_KEYS,
    complete_commissions,
    get_commission_rate,
    get_default_rates,
    upsert_commission,
)


async def test_builtin_defaults(session):
    assert await get_default_rates(session) == DEFAULT_COMMISSION_RATES
    assert await get_commission_rate(session, None, "satamatka_odd_even") == 1000
    assert await get_commission_rate(session, None, "not_a_game") == 0


async def test_subadmin_rate_overrides_platform(session, subadmin):
    await upsert_commission(session, None, "satamatka_jodi", 500)
    await upsert_commission(session, subadmin.id, "satamatka_jodi", 300)
    await session.commit()

    assert await get_commission_rate(session, subadmin.id, "satamatka_jodi") == 300
    assert await get_commission_rate(session, None, "satamatka_jodi") == 500
    # 子管理员没配的走平台默认
    await upsert_commission(session, None, "satamatka_harf", 700)
    assert await get_commission_rate(session, subadmin.id, "satamatka_harf") == 700


async def test_upsert_updates_in_place(session):
    first = await upsert_commission(session, None, "deposit", 100)
    second = await upsert_commission(session, None, "deposit", 200)
    assert first.id == second.id
    assert (await get_default_rates(session))["deposit"] == 200


async def test_complete_commissions_marks_defaults(session, subadmin):
    await upsert_commission(session, subadmin.id, "deposit", 250)
    rows = await complete_commissions(session, subadmin.id)
    assert [r["game_type"] for r in rows] == COMMISSION_KEYS
    by_key = {r["game_type"]: r for r in rows}
    assert by_key["deposit"]["commission_rate"] == "2.50"
    assert by_key["deposit"]["is_default"] is False
    assert by_key["satamatka_jodi"]["commission_rate"] == "8.00"
    assert by_key["satamatka_jodi"]["is_default"] is True


@pytest.mark.parametrize("rate", [-1, 10001])
async def test_rate_bounds(session, rate):
    with pytest.raises(ValueError):
        await upsert_commission(session, None, "deposit", rate)
