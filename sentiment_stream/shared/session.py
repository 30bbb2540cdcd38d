"""
MODULE OVERVIEW:
The session gate consumed by the stream manager.

WHAT IS HAPPENING HERE:
Logging in happens elsewhere (an embedded browser that extracts the video
platform's cookies). All the stream core needs to know is whether a usable
session exists before it opens the feed. A cookie jar is usable when every
cookie the platform needs to mint an authorization hash is present.
"""
from abc import ABC, abstractmethod
from typing import Mapping

REQUIRED_COOKIES = ("SID", "HSID", "SSID", "APISID", "SAPISID")

class SessionGate(ABC):
    @abstractmethod
    def has_valid_credentials(self) -> bool:
        pass

class AlwaysAuthorized(SessionGate):
    """Used by the development server and tests where no login exists."""
    def has_valid_credentials(self) -> bool:
        return True

class CookieSession(SessionGate):
    def __init__(self, cookies: Mapping[str, str] | None = None, logged_in: bool = True):
        self.cookies = dict(cookies or {})
        self.logged_in = logged_in

    @classmethod
    def from_cookie_header(cls, header: str) -> "CookieSession":
        """Parse a `name=value; name2=value2` cookie string."""
        cookies = {}
        for part in header.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name] = value
        return cls(cookies)

    def missing_cookies(self) -> list[str]:
        return [name for name in REQUIRED_COOKIES if name not in self.cookies]

    def has_valid_credentials(self) -> bool:
        return self.logged_in and not self.missing_cookies()

    def cookie_header(self) -> str:
        return "; ".join(f"{k}={v}" for k, v in self.cookies.items())

    def logout(self) -> None:
        self.logged_in = False
        self.cookies.clear()
