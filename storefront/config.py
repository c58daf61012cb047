"""Runtime configuration for the storefront (toggleable during tests/runtime)."""
import os
from typing import NamedTuple


class ConfigState(NamedTuple):
    # When on, cart routes accept a caller-supplied userId if no token is sent.
    trusted_cart_identity: bool


class Defaults(NamedTuple):
    role: str
    phone: str
    address: str
    stock: int
    payment_status: str
    order_status: str
    tracking_status: str
    tracking_location: str


DEFAULTS = Defaults(
    role="user",
    phone="",
    address="",
    stock=0,
    payment_status="pending",
    order_status="pending",
    tracking_status="not_shipped",
    tracking_location="",
)

ROLES = ("user", "admin")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def parse_flag(value) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


# Default: callers must present a token
state = ConfigState(trusted_cart_identity=parse_flag(os.getenv("TRUSTED_CART_IDENTITY", "0")))


def set_trusted_cart_identity(value: bool):
    global state
    state = ConfigState(trusted_cart_identity=bool(value))


def is_trusted_cart_identity() -> bool:
    return state.trusted_cart_identity
