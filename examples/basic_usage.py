"""
Cred Auth - Basic Usage Example

Logs in, persists the returned tokens, and makes authenticated requests
through the thunk middleware against a backend at localhost:3000.
"""

import asyncio
import logging

from cred_auth import (
    TOKENS_REFRESHED,
    CredClient,
    CredConfig,
    CredError,
    MemoryDriver,
    NoStoredTokensError,
    RefreshFailedError,
)


API_URL = "http://localhost:3000"


class Store:
    """Tiny state container standing in for the application's store."""

    def __init__(self) -> None:
        self.state = {"auth": {"tokens": {}}, "profile": None}

    def get_state(self):
        return self.state

    def reduce(self, action):
        if action["type"] in ("LOGGED_IN", TOKENS_REFRESHED):
            self.state["auth"]["tokens"] = action["tokens"]
        elif action["type"] == "PROFILE_LOADED":
            self.state["profile"] = action["profile"]
        elif action["type"] == "LOGGED_OUT":
            self.state["auth"]["tokens"] = {}
        return action


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG)

    async with CredClient(CredConfig(
        name="example-app",
        tokens_url=f"{API_URL}/tokens",
        storage=MemoryDriver("example-app"),
        debug=True,
    )) as client:
        store = Store()
        dispatch = client.middleware(store.reduce, store.get_state)(store.reduce)

        async def login(dispatch, call_api, get_state):
            response = await call_api(
                url=f"{API_URL}/login",
                method="POST",
                body={"email": "user@example.com", "password": "SecurePassword123!"},
                require_auth=False,
            )
            tokens = await client.save_tokens(response.data)
            dispatch({"type": "LOGGED_IN", "tokens": tokens.to_dict()})

        async def load_profile(dispatch, call_api, get_state):
            response = await call_api(url=f"{API_URL}/me")
            dispatch({"type": "PROFILE_LOADED", "profile": response.get("user")})

        try:
            await dispatch(login)
            await dispatch(load_profile)
            print(f"Profile: {store.state['profile']}")
        except (NoStoredTokensError, RefreshFailedError) as e:
            print(f"Session ended, log in again: {e.message}")
            await client.clear_tokens()
            dispatch({"type": "LOGGED_OUT"})
        except CredError as e:
            print(f"Error (expected without real API): {e!r}")


if __name__ == "__main__":
    asyncio.run(main())
