"""
Token authentication for API clients that predate JWT.

Kept apart from the views so DRF can import it while loading settings
without pulling in the view modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>``; the key is issued by ``/api/auth/login``."""

    keyword = 'Token'
