"""
Cred Auth Thunk Middleware

Adapter for redux-style state containers. Callable actions ("thunks") are
invoked with `(dispatch, call_api, get_state)`; every other action goes to
the next handler untouched.

When a thunk's request had to refresh the access token, the middleware
dispatches `refresh_action(pair)` (by default a `TOKENS_REFRESHED` action) so
the application can store the new pair and later requests reuse it.

Usage:
    middleware = client.middleware
    handle = middleware(store.dispatch, store.get_state)(next_handler)

    async def load_profile(dispatch, call_api, get_state):
        response = await call_api(url="https://api.example.com/me")
        dispatch({"type": "PROFILE_LOADED", "profile": response.data})

    await handle(load_profile)
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from .storage import TokenSource, TokenStore
from .types import ApiResponse, RequestSpec, TokenPair

if TYPE_CHECKING:
    from .client import AuthenticatedRequestDispatcher


CallApi = Callable[..., Awaitable[ApiResponse]]
Handler = Callable[[Any], Any]


def select_state_tokens(state: Any) -> Optional[Any]:
    """Read `state["auth"]["tokens"]` (or `state.auth.tokens`), None if missing."""
    node = state
    for key in ("auth", "tokens"):
        if node is None:
            return None
        if isinstance(node, dict):
            node = node.get(key)
        else:
            node = getattr(node, key, None)
    return node


class ThunkMiddleware:
    """Supplies thunk actions with an authenticated request function."""

    def __init__(
        self,
        dispatcher: "AuthenticatedRequestDispatcher",
        store: TokenStore,
        tokens_selector: Callable[[Any], Any] = select_state_tokens,
        refresh_action: Optional[Callable[[TokenPair], Any]] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._store = store
        self._tokens_selector = tokens_selector
        self._refresh_action = refresh_action

    def bind(
        self,
        get_state: Callable[[], Any],
        dispatch: Optional[Callable[[Any], Any]] = None,
    ) -> CallApi:
        """
        Build a request function that reads tokens from `get_state()`.

        State is read when the returned function is called, so each request
        sees the tokens the application holds at that moment. With `dispatch`,
        a refreshed pair is announced through the configured refresh action.
        """
        on_refresh: Optional[Callable[[TokenPair], Any]] = None
        if dispatch is not None and self._refresh_action is not None:
            refresh_action = self._refresh_action

            def announce(pair: TokenPair) -> None:
                dispatch(refresh_action(pair))

            on_refresh = announce

        async def call_api(**options: Any) -> ApiResponse:
            spec = RequestSpec(**options)
            source = TokenSource(self._store, self._tokens_selector(get_state()))
            return await self._dispatcher.dispatch(spec, source, on_refresh=on_refresh)

        return call_api

    def __call__(self, dispatch: Callable[[Any], Any], get_state: Callable[[], Any]) -> Callable[[Handler], Handler]:
        call_api = self.bind(get_state, dispatch)

        def wrap(next_handler: Handler) -> Handler:
            def handle(action: Any) -> Any:
                if callable(action):
                    return action(dispatch, call_api, get_state)
                return next_handler(action)

            return handle

        return wrap
