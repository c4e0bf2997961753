# oauthkit

Building blocks for services that sign users in through an OAuth provider:

- **`oauthkit.encryption`**: encrypts tokens at rest with AES-256-GCM. Every
  call uses a fresh random 12-byte nonce. The result is a single string of the
  form `base64(nonce):base64(ciphertext)`.
- **`oauthkit.ratelimiter`**: a two-layer asyncio rate limiter. The first
  layer is a per-user quota that resets on an interval. The second is a global
  failsafe limiter.
- **`oauthkit.errors`**: the `AuthError` family of exceptions, the `UserInfo`
  record and the abstract `RateLimiter` interface (`check(key)` and
  `record(key)`), for use by OAuth provider code.

## Installation

```
pip install oauthkit
```

To run the test suite, install the `test` extra:

```
pip install "oauthkit[test]"
pytest
```

## Encrypting tokens

```python
import os
from oauthkit.encryption import Encryptor

key = os.urandom(32)          # must be exactly 32 bytes
encryptor = Encryptor(key)

stored = encryptor.encrypt("token")
assert encryptor.decrypt(stored) == "token"
```

The operations raise these errors:

- A key of the wrong length raises `InvalidKeyLengthError`. Its `length`
  attribute holds the length that was given.
- `decrypt` raises `InvalidFormatError` when the input is not of the form
  `nonce:ciphertext`, when either part is not valid base64, or when the nonce
  is not 12 bytes long.
- A tampered ciphertext raises `DecryptionError`.
- Decrypted bytes that are not UTF-8 raise `Utf8DecodeError`.
- `EncryptionError` is raised when encryption fails.

All of these errors derive from `CryptoError`.

## Rate limiting

```python
import asyncio
from oauthkit.ratelimiter import (
    LimiterConfig, TokenRateLimiter, UserQuotaExceeded, SystemOverloaded,
)

async def main():
    config = LimiterConfig(
        global_limit=100,
        global_period=60.0,               # seconds
        default_user_limit=10,
        user_quota_reset_interval=3600.0, # seconds
        user_inactivity_timeout=86400.0,  # seconds
    )
    async with TokenRateLimiter(config) as limiter:
        limiter.set_user_limit("premium-user", 50)
        try:
            await limiter.check("premium-user")
        except UserQuotaExceeded as exc:
            print("quota used up, limit", exc.limit)
        except SystemOverloaded:
            print("system busy, try later")

        print(limiter.get_user_usage("premium-user"))   # (1, 50)

asyncio.run(main())
```

`LimiterConfig()` with no arguments uses these defaults:

| Setting | Default |
| --- | --- |
| `global_limit` | 10000 |
| `global_period` | 60 seconds |
| `default_user_limit` | 100 |
| `user_quota_reset_interval` | 3600 seconds |
| `user_inactivity_timeout` | 86400 seconds |

All durations are given in seconds.

`await limiter.check(user_id)` returns `None` when the request is allowed.
Otherwise it raises a `RateLimitError`, in one of two forms:

- `UserQuotaExceeded` means the user has used up the quota. It carries the
  user's limit as `limit`.
- `SystemOverloaded` means the global layer refused the request. The user's
  count is not charged for that request.

The global layer keeps its state per key. It allows `global_limit` requests
in a burst, and after that one more for each `global_period`.

Other methods:

- `set_user_limit(user_id, limit)` sets a custom limit and keeps the user's
  current count.
- `get_user_usage(user_id)` returns `(count, limit)`, or `None` for a user
  that is not tracked.
- `reset_user_quota(user_id)` sets the user's count back to zero.
- `remove_user(user_id)` stops tracking the user.

While an event loop is running, the limiter keeps a background task going
every 50 ms. It resets quotas whose interval has passed and forgets users who
have been inactive longer than `user_inactivity_timeout`. The task starts when
the limiter is created inside a running loop, or else on the first `check()`
or `async with`.

`await limiter.shutdown()` stops the task and clears every tracked user.
Leaving an `async with` block calls it. The limiter still answers `check()`
after shutdown, but the background task does not start again.

## What this package does not do

The package does not talk to any OAuth provider. It has no authorization-URL
building, no code-for-token exchange and no user-info requests over HTTP.
Nor does it store sessions or tokens anywhere. It supplies the encryption, the
rate limiting and the shared types that such code would use. It has no
command-line interface.