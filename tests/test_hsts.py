from datetime import timedelta
from http import HTTPStatus

import pytest

from webguard import hsts
from webguard.core import RedirectResponse, Request, ResponseWriter, set_local_dev


@pytest.fixture(autouse=True)
def _production_mode():
    set_local_dev(False)
    yield
    set_local_dev(False)


def test_http_redirects():
    w = ResponseWriter()
    hsts.default().before(w, Request("GET", "http://localhost/"), None)
    assert w.status == HTTPStatus.MOVED_PERMANENTLY
    assert isinstance(w.written, RedirectResponse)
    assert w.written.location == "https://localhost/"


def test_negative_max_age():
    w = ResponseWriter()
    it = hsts.Interceptor(max_age=timedelta(seconds=-1))
    it.before(w, Request("GET", "https://localhost/"), None)
    assert w.status == HTTPStatus.INTERNAL_SERVER_ERROR


@pytest.mark.parametrize(
    "interceptor, url, want",
    [
        (hsts.default(), "https://localhost/", "max-age=63072000; includeSubDomains"),
        (hsts.Interceptor(behind_proxy=True), "http://localhost/", "max-age=0; includeSubDomains"),
        (
            hsts.Interceptor(preload=True, disable_include_subdomains=True),
            "https://localhost/",
            "max-age=0; preload",
        ),
        (hsts.Interceptor(preload=True), "https://localhost/", "max-age=0; includeSubDomains; preload"),
        (hsts.Interceptor(disable_include_subdomains=True), "https://localhost/", "max-age=0"),
        (
            hsts.Interceptor(max_age=timedelta(seconds=3600)),
            "https://localhost/",
            "max-age=3600; includeSubDomains",
        ),
    ],
)
def test_hsts_ok(interceptor, url, want):
    w = ResponseWriter()
    interceptor.before(w, Request("GET", url), None)
    assert w.status == HTTPStatus.OK
    assert w.headers.as_dict() == {"Strict-Transport-Security": [want]}


def test_local_dev_skips_everything():
    set_local_dev(True)
    w = ResponseWriter()
    res = hsts.default().before(w, Request("GET", "http://localhost/"), None)
    assert res.written is False
    assert w.headers.as_dict() == {}
    assert w.status == HTTPStatus.OK


def test_match_is_false():
    assert hsts.default().match(None) is False