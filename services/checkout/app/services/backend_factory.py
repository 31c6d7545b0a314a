from __future__ import annotations

import os

from services.checkout.app.services.backend_base import StorefrontBackend
from services.checkout.app.services.backend_mock import MockStorefrontBackend


def get_storefront_backend(token: str) -> StorefrontBackend:
    """Select a backend based on env vars.

    Defaults to the in-memory mock so tests and local dev are deterministic unless explicitly
    configured otherwise.
    """

    mode = os.getenv("STOREFRONT_BACKEND", "mock").strip().lower()

    if mode == "mock":
        return MockStorefrontBackend()

    if mode == "http":
        from services.checkout.app.services.backend_http import HttpStorefrontBackend

        return HttpStorefrontBackend.from_env(token)

    raise ValueError(f"Unknown STOREFRONT_BACKEND={mode!r}. Expected mock or http.")
