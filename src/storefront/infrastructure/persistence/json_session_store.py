"""JSON-file-backed storage for the shopper's session.

Keeps what a browser would keep in a cookie and session storage: the cart
token, the customer's access token and the id of an order awaiting payment.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path


def new_cart_token() -> str:
    return f"cart_{uuid.uuid4()}"


@dataclass
class Session:
    cart_token: str
    access_token: str | None = None
    pending_order_id: str | None = None


class JsonSessionStore:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    def load(self) -> Session:
        """Return the stored session, starting a new one if there is none."""
        if not self._file_path.exists():
            session = Session(cart_token=new_cart_token())
            self.save(session)
            return session
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        return Session(
            cart_token=raw.get("cart_token") or new_cart_token(),
            access_token=raw.get("access_token"),
            pending_order_id=raw.get("pending_order_id"),
        )

    def save(self, session: Session) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._file_path.write_text(
            json.dumps(asdict(session), indent=2) + "\n", encoding="utf-8"
        )

    def rotate_cart_token(self, session: Session) -> Session:
        """Start a fresh cart after an order; the sign-in is kept."""
        session.cart_token = new_cart_token()
        session.pending_order_id = None
        self.save(session)
        return session
