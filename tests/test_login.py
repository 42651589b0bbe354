"""Unit tests for login form parsing and success classification."""

import pytest
from conftest import (
    BASE_URL,
    HOME_PAGE,
    LOGIN_FAILED_PAGE,
    LOGIN_PAGE,
    LOGIN_PAGE_WITHOUT_FORM,
    html_response,
)

from kicktipp.auth.interfaces import Credentials
from kicktipp.auth.login import (
    build_login_payload,
    is_login_successful,
    is_login_url,
    left_login_page,
    parse_login_form,
)
from kicktipp.core.exceptions import LoginFormMissingError
from kicktipp.core.models import LoginFormDescriptor

LOGIN_URL = BASE_URL + "/info/profil/login"


def _form(action_attr: str, inputs: str = "") -> str:
    return f"<html><body><form {action_attr}>{inputs}</form></body></html>"


class TestParseLoginForm:
    def test_extracts_action_and_hidden_fields(self):
        form = parse_login_form(LOGIN_PAGE, LOGIN_URL)

        assert form.submit_url == BASE_URL + "/info/profil/loginaction"
        assert form.hidden_fields == (
            ("_charset_", "UTF-8"),
            ("source", ""),
            ("token", "a+b/c==&x"),
        )

    @pytest.mark.parametrize(
        "action, expected",
        [
            ('action="https://other.test/login"', "https://other.test/login"),
            ('action="/info/profil/loginaction"', BASE_URL + "/info/profil/loginaction"),
            ('action="loginaction"', BASE_URL + "/info/profil/loginaction"),
            ('action=""', LOGIN_URL),
            ("", LOGIN_URL),
        ],
    )
    def test_resolves_action_against_page_url(self, action, expected):
        assert parse_login_form(_form(action), LOGIN_URL).submit_url == expected

    def test_uses_only_the_first_form(self):
        html = (
            _form('action="/first"', '<input type="hidden" name="a" value="1">')
            + _form('action="/second"', '<input type="hidden" name="b" value="2">')
        )
        form = parse_login_form(html, LOGIN_URL)

        assert form.submit_url == BASE_URL + "/first"
        assert form.hidden_fields == (("a", "1"),)

    def test_ignores_visible_and_nameless_inputs(self):
        inputs = (
            '<input type="text" name="kennung" value="x">'
            '<input type="hidden" value="orphan">'
            '<input type="HIDDEN" name="upper" value="U">'
            '<input type="hidden" name="novalue">'
        )
        form = parse_login_form(_form('action="/a"', inputs), LOGIN_URL)

        assert form.hidden_fields == (("upper", "U"), ("novalue", ""))

    def test_missing_form_raises(self):
        with pytest.raises(LoginFormMissingError):
            parse_login_form(LOGIN_PAGE_WITHOUT_FORM, LOGIN_URL)


def test_payload_puts_credentials_first_then_hidden_fields(site):
    form = LoginFormDescriptor(
        submit_url=LOGIN_URL, hidden_fields=(("_charset_", "UTF-8"), ("t", "1"))
    )
    payload = build_login_payload(form, Credentials("user", "pw"), site)

    assert payload == [
        ("kennung", "user"),
        ("passwort", "pw"),
        ("_charset_", "UTF-8"),
        ("t", "1"),
    ]


class TestIsLoginUrl:
    @pytest.mark.parametrize(
        "url",
        [LOGIN_URL, LOGIN_URL + "/", BASE_URL + "/info/profil/loginaction"],
    )
    def test_login_urls(self, site, url):
        assert is_login_url(url, site)

    @pytest.mark.parametrize(
        "url",
        [BASE_URL + "/meine-tipprunden", "https://elsewhere.test/info/profil/login", None],
    )
    def test_other_urls(self, site, url):
        assert not is_login_url(url, site)


class TestIsLoginSuccessful:
    def test_redirect_away_to_home_page(self, site):
        response = html_response(200, HOME_PAGE, BASE_URL + "/meine-tipprunden")
        assert is_login_successful(response, site)

    def test_login_form_shown_again(self, site):
        response = html_response(
            200, LOGIN_FAILED_PAGE, BASE_URL + "/info/profil/loginaction"
        )
        assert not is_login_successful(response, site)

    def test_logout_link_on_login_url_is_enough(self, site):
        response = html_response(200, HOME_PAGE, LOGIN_URL)
        assert is_login_successful(response, site)

    def test_form_gone_on_login_url_is_enough(self, site):
        response = html_response(200, "<html>Willkommen</html>", LOGIN_URL)
        assert is_login_successful(response, site)

    def test_check_set_is_configurable(self, site):
        response = html_response(200, LOGIN_FAILED_PAGE, BASE_URL + "/error")

        assert is_login_successful(response, site)
        assert not is_login_successful(
            response, site, checks=(lambda r, d, s: False,)
        )
        assert is_login_successful(response, site, checks=(left_login_page,))
