"""Tests for the session gate and widget backend selection."""

import pytest

from sentiment_stream.client.widgets import LogWidgetTarget, NullWidgetTarget, make_widget_target
from sentiment_stream.shared.session import AlwaysAuthorized, CookieSession

FULL_HEADER = "SID=a; HSID=b; SSID=c; APISID=d; SAPISID=e; PREF=f"


def test_complete_cookie_header_is_valid():
    session = CookieSession.from_cookie_header(FULL_HEADER)

    assert session.has_valid_credentials()
    assert session.cookies["SAPISID"] == "e"
    assert session.missing_cookies() == []


def test_incomplete_cookies_are_rejected():
    session = CookieSession({"SID": "a", "HSID": "b"})

    assert not session.has_valid_credentials()
    assert session.missing_cookies() == ["SSID", "APISID", "SAPISID"]


def test_logout_invalidates_session():
    session = CookieSession.from_cookie_header(FULL_HEADER)
    session.logout()

    assert not session.has_valid_credentials()
    assert session.cookie_header() == ""


def test_cookie_header_round_trips_values_with_equals():
    session = CookieSession.from_cookie_header("SID=a=b; junk; HSID=")
    assert session.cookies == {"SID": "a=b", "HSID": ""}


def test_always_authorized():
    assert AlwaysAuthorized().has_valid_credentials()


@pytest.mark.parametrize("name, expected", [("none", NullWidgetTarget), (" LOG ", LogWidgetTarget)])
def test_make_widget_target(name, expected):
    assert isinstance(make_widget_target(name), expected)


def test_make_widget_target_rejects_unknown_backend():
    with pytest.raises(ValueError):
        make_widget_target("activitykit")
