"""
Tests for the environment-backed evaluation service.
"""

import pytest

from featuregate.core.evaluator import (
    EvaluationReason,
    EvaluationService,
    FlagRecord,
    MemoryConfigBackend,
    SegmentRecord,
)
from featuregate.core.exceptions import NotFoundError
from featuregate.services.cache import FlagCache
from featuregate.services.config import ConfigService


def checkout_flag() -> FlagRecord:
    return FlagRecord(
        key="new-checkout",
        enabled=True,
        variations=[{"value": "off"}, {"value": "on"}],
        off_variation=0,
        fallthrough={"variation": 0},
        rules=[{
            "id": "pro",
            "clauses": [{"attribute": "plan", "operator": "in", "values": ["pro"]}],
            "rollout": {"variations": [{"variation": 1, "weight": 100000}]},
        }],
    )


def beta_flag() -> FlagRecord:
    return FlagRecord(
        key="beta-banner",
        enabled=True,
        variations=[{"value": False}, {"value": True}],
        off_variation=0,
        fallthrough={"variation": 0},
        rules=[{
            "id": "beta",
            "clauses": [{"attribute": "segmentMatch", "operator": "in", "values": ["seg-beta"]}],
            "rollout": {"variation": 1},
        }],
    )


@pytest.fixture
def backend() -> MemoryConfigBackend:
    backend = MemoryConfigBackend()
    backend.seed(
        "production",
        flags=[checkout_flag(), beta_flag()],
        segments=[SegmentRecord(id="seg-beta", key="beta", included=["u1"])],
    )
    return backend


@pytest.fixture
def service(backend: MemoryConfigBackend, flag_cache: FlagCache) -> EvaluationService:
    return EvaluationService(backend, cache=flag_cache)


@pytest.mark.asyncio
async def test_evaluate_rollout_and_default(service: EvaluationService):
    pro = await service.evaluate("production", "new-checkout", {"key": "u1", "plan": "pro"})
    free = await service.evaluate("production", "new-checkout", {"key": "u1", "plan": "free"})

    assert (pro.value, pro.variation_index, pro.reason) == ("on", 1, EvaluationReason.ROLLOUT)
    assert (free.value, free.variation_index, free.reason) == ("off", 0, EvaluationReason.DEFAULT)


@pytest.mark.asyncio
async def test_evaluate_resolves_segment_references(service: EvaluationService):
    member = await service.evaluate("production", "beta-banner", {"key": "u1"})
    other = await service.evaluate("production", "beta-banner", {"key": "u2"})

    assert member.value is True
    assert member.reason == EvaluationReason.RULE_MATCH
    assert other.value is False


@pytest.mark.asyncio
async def test_evaluate_unknown_flag_raises(service: EvaluationService):
    with pytest.raises(NotFoundError) as exc:
        await service.evaluate("production", "missing", {"key": "u1"})
    assert exc.value.message == "Flag 'missing' not found"


@pytest.mark.asyncio
async def test_environments_are_isolated(service: EvaluationService):
    with pytest.raises(NotFoundError):
        await service.evaluate("staging", "new-checkout", {"key": "u1"})


@pytest.mark.asyncio
async def test_evaluate_all(service: EvaluationService):
    results = await service.evaluate_all("production", {"key": "u1", "plan": "pro"})

    assert set(results) == {"new-checkout", "beta-banner"}
    assert results["new-checkout"].value == "on"
    assert results["beta-banner"].value is True


@pytest.mark.asyncio
async def test_evaluate_all_skips_unknown_keys(service: EvaluationService):
    results = await service.evaluate_all("production", {"key": "u1"}, ["new-checkout", "missing"])
    assert list(results) == ["new-checkout"]


@pytest.mark.asyncio
async def test_payload_shape(service: EvaluationService):
    payload = await service.get_payload("production")

    assert set(payload["flags"]) == {"new-checkout", "beta-banner"}
    assert payload["segments"]["beta"]["included"] == ["u1"]
    clause = payload["flags"]["beta-banner"]["rules"][0]["clauses"][0]
    assert clause == {"attribute": "segment:beta", "operator": "in", "values": [True]}


@pytest.mark.asyncio
async def test_payload_is_cached_until_invalidated(
    service: EvaluationService,
    backend: MemoryConfigBackend,
    flag_cache: FlagCache,
):
    await service.get_payload("production")
    await backend.delete_flag("production", "new-checkout")

    cached = await service.get_payload("production")
    assert "new-checkout" in cached["flags"]

    await flag_cache.invalidate_flag("production", "new-checkout")
    fresh = await service.get_payload("production")
    assert "new-checkout" not in fresh["flags"]


@pytest.mark.asyncio
async def test_invalid_flag_is_left_out_of_payload(backend: MemoryConfigBackend):
    backend.seed("production", flags=[FlagRecord(key="broken", targets=[{"values": ["u1"]}])])
    service = EvaluationService(backend)

    payload = await service.get_payload("production")
    assert "broken" not in payload["flags"]
    assert "new-checkout" in payload["flags"]


@pytest.mark.asyncio
async def test_get_flag(service: EvaluationService, flag_cache: FlagCache):
    data = await service.get_flag("production", "new-checkout")

    assert data["key"] == "new-checkout"
    assert data["defaultRule"] == {"variation": 0}
    assert await flag_cache.get_flag("production", "new-checkout") == data

    with pytest.raises(NotFoundError):
        await service.get_flag("production", "missing")


@pytest.mark.asyncio
async def test_service_without_cache(backend: MemoryConfigBackend):
    service = EvaluationService(backend)
    result = await service.evaluate("production", "new-checkout", {"key": "u1", "plan": "pro"})
    assert result.reason == EvaluationReason.ROLLOUT


@pytest.mark.asyncio
async def test_segment_change_refreshes_cached_flag(backend: MemoryConfigBackend, flag_cache: FlagCache):
    service = EvaluationService(backend, cache=flag_cache)
    writer = ConfigService(backend, cache=flag_cache)

    before = await service.get_flag("production", "beta-banner")
    assert before["rules"][0]["clauses"][0]["attribute"] == "segment:beta"

    await writer.delete_segment("production", "beta")
    after = await service.get_flag("production", "beta-banner")

    assert after["rules"][0]["clauses"][0]["attribute"] == "segmentMatch"
    assert after["rules"][0]["clauses"][0]["values"] == ["seg-beta"]


@pytest.mark.asyncio
async def test_non_dict_rule_is_left_out_of_payload(backend: MemoryConfigBackend):
    backend.seed("production", flags=[FlagRecord(key="garbled", rules=["not-a-rule"])])
    service = EvaluationService(backend)

    payload = await service.get_payload("production")
    assert "garbled" not in payload["flags"]
    assert "new-checkout" in payload["flags"]

    result = await service.evaluate("production", "new-checkout", {"key": "u1", "plan": "pro"})
    assert result.reason == EvaluationReason.ROLLOUT
