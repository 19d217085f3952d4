import pytest

from donotimer.admin import AdminMutator, validate_patch
from donotimer.errors import Unauthorized, ValidationError
from donotimer.helpers import parse_instant
from donotimer.query import QueryFacade

SECRET = "s3cret"


@pytest.fixture
def mutator(store, serializer):
    return AdminMutator(store, serializer, SECRET)


@pytest.mark.parametrize("credential", [None, "", "wrong", "s3cret "])
def test_authorize_rejects(mutator, credential):
    with pytest.raises(Unauthorized):
        mutator.authorize(credential)


def test_empty_configured_secret_rejects_everything(store, serializer):
    with pytest.raises(Unauthorized):
        AdminMutator(store, serializer, "").authorize("")


def test_login_returns_token(mutator):
    assert mutator.login(SECRET) == SECRET
    with pytest.raises(Unauthorized):
        mutator.login("nope")


def test_validate_patch_collects_every_bad_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_patch({"targetAt": "tomorrow", "rpPerUnit": 0,
                        "secondsPerUnit": -1})
    assert set(exc_info.value.field_errors) == {
        "targetAt", "rpPerUnit", "secondsPerUnit",
    }


@pytest.mark.parametrize("value", [0, -5, 1.5, True, "10"])
def test_validate_patch_rejects_bad_rate(value):
    with pytest.raises(ValidationError):
        validate_patch({"rpPerUnit": value})


def test_validate_patch_legacy_time_unit():
    assert validate_patch({"timeUnit": "minutes"}) == {"seconds_per_unit": 60}
    # explicit seconds win over the legacy unit
    assert validate_patch({"timeUnit": "minutes", "secondsPerUnit": 5}) == {
        "seconds_per_unit": 5,
    }
    with pytest.raises(ValidationError):
        validate_patch({"timeUnit": "hours"})


@pytest.mark.asyncio
async def test_retarget_resets_baseline(mutator, store):
    new_target = "2026-01-01T05:00:00+00:00"
    state = await mutator.apply(SECRET, {"targetAt": new_target})
    assert state.target_at == parse_instant(new_target)
    assert state.initial_target_at == state.target_at
    assert await store.read() == state


@pytest.mark.asyncio
async def test_partial_update_leaves_other_fields(mutator, store):
    before = await store.read()
    state = await mutator.apply(SECRET, {"rpPerUnit": 2500})
    assert state.rp_per_unit == 2500
    assert state.seconds_per_unit == before.seconds_per_unit
    assert state.target_at == before.target_at
    assert state.initial_target_at == before.initial_target_at


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"rpPerUnit": 0},
    {"targetAt": "not-a-date"},
    {"rpPerUnit": 2000, "targetAt": "not-a-date"},
    {"targetAt": "9999-12-31T23:59:59-05:00"},
])
async def test_rejected_update_leaves_store_unchanged(mutator, store, body):
    before = await store.read()
    with pytest.raises(ValidationError):
        await mutator.apply(SECRET, body)
    assert await store.read() == before
    assert store.writes == 0


@pytest.mark.asyncio
async def test_unauthorized_update_leaves_store_unchanged(mutator, store):
    with pytest.raises(Unauthorized):
        await mutator.apply("wrong", {"rpPerUnit": 5})
    assert store.writes == 0


@pytest.mark.asyncio
async def test_percentage_is_100_right_after_retarget(mutator, store, clock):
    facade = QueryFacade(store, clock=clock)
    await mutator.apply(SECRET, {"targetAt": "2026-01-01T01:00:00Z"})
    snap = await facade.snapshot()
    assert snap["percentageRemaining"] == 100
    assert snap["remainingSeconds"] == 3600
