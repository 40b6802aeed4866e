from __future__ import annotations

import asyncio

import pytest

from ammcore.orchestration.approval import ApprovalIssued
from ammcore.orchestration.errors import (
    AdviceUnavailable,
    ApprovalRejected,
    InvalidAmount,
    LiquidityCallFailed,
    QuoteUnavailable,
    RatioMismatch,
    Step,
    WrongNetwork,
)
from ammcore.orchestration.liquidity import LiquidityOrchestrator, classify_liquidity_failure
from ammcore.orchestration.network import NetworkState
from ammcore.orchestration.wallet import WalletSnapshot

from tests.conftest import ADAPTER, DAI, OTHER_CHAIN_ID, OWNER, USDT, WETH


@pytest.fixture
def orchestrator(chain, guard, registry) -> LiquidityOrchestrator:
    return LiquidityOrchestrator(chain, chain, guard, ADAPTER, default_ratio=registry.default_ratio)


@pytest.fixture
def snapshot() -> WalletSnapshot:
    return WalletSnapshot(owner=OWNER)


@pytest.mark.asyncio
async def test_advice_from_reserves(chain, orchestrator):
    chain.set_reserves(WETH, USDT, 10 * 10**18, 20_000 * 10**6)

    advice = await orchestrator.advise_second_amount(WETH, USDT, "2.5")

    assert advice.amount_b.decimal_string == "5000.000000"
    assert advice.source == "reserves"
    assert advice.stale is False
    assert advice.reserves.reserve_a.decimal_string == "10.000000000000000000"
    assert chain.mutating_calls() == []


@pytest.mark.asyncio
async def test_advice_from_overtaken_reserve_read_is_marked_stale(chain, orchestrator):
    chain.set_reserves(WETH, USDT, 10 * 10**18, 20_000 * 10**6)
    chain.reserve_delays = [0.05, 0]

    first, second = await asyncio.gather(
        orchestrator.advise_second_amount(WETH, USDT, "0.5"),
        orchestrator.advise_second_amount(WETH, USDT, "2"),
    )

    assert first.stale is True
    assert first.to_dict()["stale"] is True
    assert second.stale is False
    assert second.amount_b.decimal_string == "4000.000000"
    assert orchestrator.reserves.discarded == 1
    assert orchestrator.current_reserves(WETH, USDT) == second.reserves
    assert orchestrator.current_reserves(USDT, WETH) is None


@pytest.mark.asyncio
async def test_advice_for_empty_pool_uses_default_ratio(orchestrator):
    advice = await orchestrator.advise_second_amount(WETH, USDT, "2.5")

    assert advice.source == "default_ratio"
    assert advice.amount_b.decimal_string == "5000.000000"


@pytest.mark.asyncio
async def test_advice_survives_reserve_read_failure(chain, orchestrator):
    chain.failures["get_reserves"] = ConnectionError("rpc down")

    advice = await orchestrator.advise_second_amount(USDT, WETH, "5000")

    assert advice.source == "default_ratio"
    assert advice.reserves is None
    assert advice.amount_b.raw == 25 * 10**17


@pytest.mark.asyncio
async def test_advice_without_ratio_is_unavailable(orchestrator):
    with pytest.raises(AdviceUnavailable) as exc_info:
        await orchestrator.advise_second_amount(WETH, DAI, "1")
    assert exc_info.value.step is Step.ADVICE


@pytest.mark.asyncio
async def test_advice_is_available_on_wrong_network(chain, guard, orchestrator):
    guard.check(OTHER_CHAIN_ID)
    chain.set_reserves(WETH, USDT, 10 * 10**18, 20_000 * 10**6)

    advice = await orchestrator.advise_second_amount(WETH, USDT, "1")

    assert advice.network_state is NetworkState.INCORRECT
    assert advice.amount_b.decimal_string == "2000.000000"


@pytest.mark.asyncio
async def test_read_reserves_failure_is_quote_unavailable(chain, orchestrator):
    chain.failures["get_reserves"] = ConnectionError("rpc down")
    with pytest.raises(QuoteUnavailable):
        await orchestrator.read_reserves(WETH, USDT)


@pytest.mark.asyncio
async def test_add_liquidity_passes_basis_points(chain, orchestrator, snapshot):
    chain.balances = {"WETH": 9 * 10**18, "USDT": 18_000 * 10**6}
    chain.set_reserves(WETH, USDT, 11 * 10**18, 22_000 * 10**6)

    result = await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    assert ("add_liquidity", ("WETH", "USDT", 10**18, 2_000 * 10**6, 100)) in chain.calls
    assert result.tolerance_bps == 100
    assert set(result.approvals) == {"WETH", "USDT"}
    assert all(isinstance(outcome, ApprovalIssued) for outcome in result.approvals.values())
    assert result.reserves.reserve_b.decimal_string == "22000.000000"
    assert result.snapshot.balance("WETH").raw == 9 * 10**18
    assert chain.names()[-4:] == ["add_liquidity", "balance_of", "balance_of", "get_reserves"]
    assert result.to_dict()["liquidity_minted"] == "1000"


@pytest.mark.asyncio
async def test_half_percent_is_fifty_basis_points(chain, orchestrator, snapshot):
    result = await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "0.5")
    assert result.tolerance_bps == 50
    assert chain.calls[-4][1][-1] == 50


@pytest.mark.asyncio
async def test_used_amounts_come_from_receipt(chain, orchestrator, snapshot):
    chain.liquidity_used = (9 * 10**17, 1_800 * 10**6)

    result = await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    assert result.used_a.decimal_string == "0.900000000000000000"
    assert result.used_b.decimal_string == "1800.000000"


@pytest.mark.asyncio
async def test_both_approvals_are_attempted(chain, orchestrator, snapshot):
    chain.approve_failures.add("WETH")

    with pytest.raises(ApprovalRejected) as exc_info:
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    outcomes = exc_info.value.params["outcomes"]
    assert outcomes["WETH"]["kind"] == "ApprovalRejected"
    assert outcomes["USDT"]["status"] == "approval_issued"
    assert chain.count("approve") == 2
    assert chain.count("add_liquidity") == 0


@pytest.mark.asyncio
async def test_ratio_violation_is_ratio_mismatch(chain, orchestrator, snapshot):
    chain.failures["add_liquidity"] = RuntimeError("execution reverted: UniswapV2Router: INSUFFICIENT_B_AMOUNT")

    with pytest.raises(RatioMismatch) as exc_info:
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    err = exc_info.value
    assert isinstance(err, LiquidityCallFailed)
    assert err.params["signature"] == "INSUFFICIENT_B_AMOUNT"
    assert err.params["tolerance_bps"] == 100
    assert "advised second amount" in err.to_dict()["guidance"]


@pytest.mark.asyncio
async def test_other_failures_are_generic(chain, orchestrator, snapshot):
    cause = RuntimeError("gas required exceeds allowance")
    chain.failures["add_liquidity"] = cause

    with pytest.raises(LiquidityCallFailed) as exc_info:
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    assert not isinstance(exc_info.value, RatioMismatch)
    assert exc_info.value.cause is cause
    assert exc_info.value.step is Step.EXECUTION


def test_classify_with_configured_signatures():
    failure = classify_liquidity_failure(RuntimeError("reverted: RATIO_OFF"), {"pair": "A/B"}, ("RATIO_OFF",))
    assert isinstance(failure, RatioMismatch)

    failure = classify_liquidity_failure(RuntimeError("INSUFFICIENT_A_AMOUNT"), {}, ("RATIO_OFF",))
    assert not isinstance(failure, RatioMismatch)


@pytest.mark.asyncio
async def test_wrong_network_makes_no_external_calls(chain, guard, orchestrator, snapshot):
    guard.check(OTHER_CHAIN_ID)

    with pytest.raises(WrongNetwork):
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")
    assert chain.calls == []


@pytest.mark.asyncio
async def test_invalid_second_amount_makes_no_external_calls(chain, orchestrator, snapshot):
    with pytest.raises(InvalidAmount):
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000.0000001", "1")
    assert chain.calls == []


@pytest.mark.asyncio
async def test_network_change_after_approvals_reports_granted_allowances(chain, guard, orchestrator, snapshot):
    confirmations = []

    def _flip_on_second_confirmation():
        confirmations.append(True)
        if len(confirmations) == 2:
            guard.check(OTHER_CHAIN_ID, source="chain_changed")

    chain.on_confirm = _flip_on_second_confirmation

    with pytest.raises(WrongNetwork) as exc_info:
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    assert chain.count("add_liquidity") == 0
    params = exc_info.value.params
    assert params["operation"] == "add_liquidity"
    assert params["allowance_changed"] is True
    assert set(params["approvals"]) == {"WETH", "USDT"}
    assert params["approvals"]["USDT"]["status"] == "approval_issued"


@pytest.mark.asyncio
async def test_network_change_between_approvals_keeps_first_outcome(chain, guard, orchestrator, snapshot):
    chain.on_confirm = lambda: guard.check(OTHER_CHAIN_ID, source="chain_changed")

    with pytest.raises(WrongNetwork) as exc_info:
        await orchestrator.execute_add_liquidity(snapshot, WETH, USDT, "1", "2000", "1")

    assert chain.count("approve") == 1
    params = exc_info.value.params
    assert params["operation"] == "approve"
    assert params["allowance_changed"] is True
    assert list(params["approvals"]) == ["WETH"]
