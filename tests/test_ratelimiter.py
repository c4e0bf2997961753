import asyncio

import pytest

from oauthkit.ratelimiter import (
    LimiterConfig,
    RateLimitError,
    SystemOverloaded,
    TokenRateLimiter,
    UserQuotaExceeded,
)


def _config():
    return LimiterConfig(
        global_limit=100,
        global_period=1.0,
        default_user_limit=5,
        user_quota_reset_interval=1.0,
        user_inactivity_timeout=60.0,
    )


@pytest.mark.asyncio
async def test_basic_rate_limiting():
    async with TokenRateLimiter(_config()) as limiter:
        for _ in range(5):
            await limiter.check("test_user")
        with pytest.raises(UserQuotaExceeded) as info:
            await limiter.check("test_user")
        assert info.value.limit == 5
        assert str(info.value) == "User quota exceeded (limit: 5)"


@pytest.mark.asyncio
async def test_custom_user_limit():
    async with TokenRateLimiter(_config()) as limiter:
        limiter.set_user_limit("premium_user", 10)
        for _ in range(10):
            await limiter.check("premium_user")
        with pytest.raises(UserQuotaExceeded) as info:
            await limiter.check("premium_user")
        assert info.value.limit == 10


@pytest.mark.asyncio
async def test_set_limit_keeps_usage():
    async with TokenRateLimiter(_config()) as limiter:
        for _ in range(3):
            await limiter.check("user")
        limiter.set_user_limit("user", 10)
        assert limiter.get_user_usage("user") == (3, 10)


@pytest.mark.asyncio
async def test_quota_reset():
    async with TokenRateLimiter(_config()) as limiter:
        for _ in range(5):
            await limiter.check("test_user")
        with pytest.raises(RateLimitError):
            await limiter.check("test_user")
        await asyncio.sleep(1.1)
        await limiter.check("test_user")
        assert limiter.get_user_usage("test_user") == (1, 5)


@pytest.mark.asyncio
async def test_manual_reset():
    async with TokenRateLimiter(_config()) as limiter:
        for _ in range(5):
            await limiter.check("test_user")
        with pytest.raises(RateLimitError):
            await limiter.check("test_user")
        limiter.reset_user_quota("test_user")
        assert limiter.get_user_usage("test_user") == (0, 5)
        await limiter.check("test_user")
        assert limiter.get_user_usage("test_user") == (1, 5)


@pytest.mark.asyncio
async def test_global_rate_limit():
    config = LimiterConfig(
        global_limit=3,
        global_period=1.0,
        default_user_limit=10,
        user_quota_reset_interval=1.0,
        user_inactivity_timeout=60.0,
    )
    async with TokenRateLimiter(config) as limiter:
        success_count = 0
        overloaded = None
        for _ in range(10):
            try:
                await limiter.check("global_test")
            except SystemOverloaded as error:
                overloaded = error
                break
            success_count += 1
            await asyncio.sleep(0.01)
        assert overloaded is not None
        assert str(overloaded) == "System capacity exceeded"
        assert 0 < success_count <= 3
        assert limiter.get_user_usage("global_test") == (success_count, 10)


@pytest.mark.asyncio
async def test_multiple_users():
    async with TokenRateLimiter(_config()) as limiter:
        for user_num in range(3):
            user_id = f"user_{user_num}"
            for _ in range(5):
                await limiter.check(user_id)
            with pytest.raises(UserQuotaExceeded):
                await limiter.check(user_id)


@pytest.mark.asyncio
async def test_cleanup_task():
    async with TokenRateLimiter(_config()) as limiter:
        for _ in range(5):
            await limiter.check("test_user")
        with pytest.raises(RateLimitError):
            await limiter.check("test_user")
        await asyncio.sleep(1.1)
        assert limiter.get_user_usage("test_user") == (0, 5)
        await limiter.check("test_user")
        assert limiter.get_user_usage("test_user") == (1, 5)


@pytest.mark.asyncio
async def test_user_usage():
    async with TokenRateLimiter(_config()) as limiter:
        assert limiter.get_user_usage("test_user") is None
        for _ in range(3):
            await limiter.check("test_user")
        assert limiter.get_user_usage("test_user") == (3, 5)


@pytest.mark.asyncio
async def test_inactivity_cleanup():
    async with TokenRateLimiter(_config()) as limiter:
        await limiter.check("inactive_user")
        assert limiter.get_user_usage("inactive_user") == (1, 5)
        limiter.remove_user("inactive_user")
        assert limiter.get_user_usage("inactive_user") is None


@pytest.mark.asyncio
async def test_background_removes_inactive_users():
    config = LimiterConfig(
        global_limit=100,
        global_period=1.0,
        default_user_limit=5,
        user_quota_reset_interval=60.0,
        user_inactivity_timeout=0.1,
    )
    async with TokenRateLimiter(config) as limiter:
        await limiter.check("idle")
        assert limiter.get_user_usage("idle") == (1, 5)
        await asyncio.sleep(0.4)
        assert limiter.get_user_usage("idle") is None


@pytest.mark.asyncio
async def test_shutdown():
    limiter = TokenRateLimiter(_config())
    await limiter.check("before")
    await limiter.shutdown()
    assert limiter.get_user_usage("before") is None
    await limiter.check("test_user")
    assert limiter.get_user_usage("test_user") == (1, 5)


@pytest.mark.asyncio
async def test_concurrent_users():
    async with TokenRateLimiter(_config()) as limiter:

        async def run(user_id):
            success_count = 0
            for _ in range(10):
                try:
                    await limiter.check(user_id)
                except RateLimitError:
                    break
                success_count += 1
            return success_count

        user_ids = [f"concurrent_user_{n}" for n in range(10)]
        results = await asyncio.gather(*(run(user_id) for user_id in user_ids))
        assert results == [5] * 10
        assert [limiter.get_user_usage(user_id) for user_id in user_ids] == [
            (5, 5)
        ] * 10


def test_default_config_values():
    config = LimiterConfig()
    assert config.global_limit == 10000
    assert config.global_period == 60.0
    assert config.default_user_limit == 100
    assert config.user_quota_reset_interval == 3600.0
    assert config.user_inactivity_timeout == 86400.0


@pytest.mark.parametrize(
    "config",
    [
        LimiterConfig(global_limit=0),
        LimiterConfig(global_period=0.0),
    ],
)
def test_invalid_global_config(config):
    with pytest.raises(ValueError):
        TokenRateLimiter(config)


def test_sync_operations_without_event_loop():
    limiter = TokenRateLimiter(_config())
    limiter.set_user_limit("user", 7)
    assert limiter.get_user_usage("user") == (0, 7)
    limiter.remove_user("user")
    assert limiter.get_user_usage("user") is None