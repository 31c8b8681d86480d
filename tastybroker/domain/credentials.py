# tastybroker/domain/credentials.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class LoginFlow:
    """Login + password (+ one-time code) exchanged for a session token."""

    login: str
    password: str = field(repr=False)
    otp: Optional[str] = field(default=None, repr=False)
    remember_me: bool = False


@dataclass(frozen=True)
class StaticToken:
    """Token obtained elsewhere (browser, earlier session). Not checked until first use."""

    token: str = field(repr=False)


Credential = Union[LoginFlow, StaticToken]
