# app/services/session_service.py
import logging
import re
import secrets
import uuid

from sqlmodel import Session

from app.repositories.cart_repo import CartRepository

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24
# token_urlsafe(24) gives 32 url-safe characters; the column holds up to 64
_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]{16,64}")


def new_session_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def is_well_formed_token(token: str | None) -> bool:
    return bool(token) and _TOKEN_PATTERN.fullmatch(token) is not None


class SessionCartBinder:
    """
    Maps an anonymous client session to exactly one cart.

    The token is passed in explicitly (the router reads it from a cookie);
    there is no ambient "current cart".
    """

    def __init__(self, cart_repo: CartRepository):
        self.cart_repo = cart_repo

    def resolve_cart(
        self,
        session: Session,
        token: str | None,
    ) -> tuple[str, uuid.UUID]:
        """
        Return (token, cart_id) for this client session.

        - token bound to a cart          => that cart, nothing created
        - token bound to a deleted cart  => same token, new cart
        - no token, a malformed one, or one this server never bound
                                         => fresh token, new cart

        Repeated calls with a valid binding return the same cart id.
        """
        binding = None
        if is_well_formed_token(token):
            binding = self.cart_repo.get_binding(session, token)

        if binding is None:
            if token:
                logger.info("Ignoring unrecognised session token")
            token = new_session_token()
        elif self.cart_repo.get_cart(session, binding.cart_id) is not None:
            return token, binding.cart_id
        else:
            logger.info(
                "Session cart %s no longer exists, creating a new one",
                binding.cart_id,
            )

        cart = self.cart_repo.create_cart(session)
        self.cart_repo.bind_session(session, token, cart.id)
        logger.info("New cart %s bound to session", cart.id)
        return token, cart.id
