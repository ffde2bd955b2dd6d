import pytest

from opportunity_explorer.domain.models import Principal
from opportunity_explorer.domain.token_refresh import TokenRefreshThrottle


@pytest.fixture
def throttle(clock):
    return TokenRefreshThrottle(clock=clock)


def test_five_refreshes_per_hour(throttle, clock):
    results = []
    for _ in range(6):
        results.append(throttle.may_refresh("user_1"))
        clock.advance(60)

    assert results == [True, True, True, True, True, False]


def test_window_is_measured_from_first_attempt(throttle, clock):
    for _ in range(5):
        throttle.may_refresh("user_1")
        clock.advance(600)
    # 50 minutes after the first attempt
    assert throttle.may_refresh("user_1") is False

    clock.advance(600)

    assert throttle.may_refresh("user_1") is True
    assert throttle.get_attempts("user_1").count == 1


def test_principals_are_throttled_independently(throttle):
    for _ in range(5):
        throttle.may_refresh("user_1")

    assert throttle.may_refresh("user_1") is False
    assert throttle.may_refresh("user_2") is True


def test_should_refresh_requires_session(throttle):
    assert throttle.should_refresh(None) is False
    assert throttle.should_refresh(Principal(id="user_1")) is False
    assert throttle.should_refresh(Principal(id="user_1", session_id="sess_1")) is True
    assert throttle.get_attempts("user_1").count == 1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        TokenRefreshThrottle(max_attempts=0)
