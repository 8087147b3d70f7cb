from contextlib import contextmanager
from typing import Iterator, Optional

from pymongo.collection import Collection

from auth import AuthService, AuthState
from cart import CartState
from storage import ClientStorage, KeyValueStore
from theme import ThemeState


class StorefrontSession:
    """State a request handler works with: who is signed in, their cart and the theme."""

    def __init__(self, client_id: str, auth: AuthState, cart: CartState, theme: ThemeState):
        self.client_id = client_id
        self.auth = auth
        self.cart = cart
        self.theme = theme


@contextmanager
def storefront_session(store: KeyValueStore, users: Optional[Collection], client_id: str,
                       revoked: Optional[Collection] = None, token: Optional[str] = None,
                       ambient: Optional[str] = None) -> Iterator[StorefrontSession]:
    storage = ClientStorage(store, client_id)
    auth = AuthState(AuthService(users, revoked))
    cart = CartState(storage)
    theme = ThemeState(storage, ambient=ambient)

    unsubscribe = auth.subscribe(cart.on_user_changed)
    try:
        theme.initialize()
        auth.restore(token)
        yield StorefrontSession(client_id, auth, cart, theme)
    finally:
        unsubscribe()
