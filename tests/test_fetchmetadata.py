from http import HTTPStatus

import pytest

from webguard import fetchmetadata
from webguard.core import Headers, Request, ResponseWriter

# (name, method, site, mode, dest)
ALLOWED_RIP = [
    ("not supported", "GET", "", "", ""),
    ("same origin", "GET", "same-origin", "", ""),
    ("same site", "GET", "same-site", "", ""),
    ("user agent initiated", "GET", "none", "", ""),
    ("cors bug missing mode", "OPTIONS", "cross-site", "", ""),
]

ALLOWED_RIP_NAV = [
    ("GET navigate document", "GET", "cross-site", "navigate", "document"),
    ("HEAD navigate document", "HEAD", "cross-site", "navigate", "document"),
    ("GET navigate nested-document", "GET", "cross-site", "navigate", "nested-document"),
    ("HEAD navigate nested-document", "HEAD", "cross-site", "navigate", "nested-document"),
    ("GET nested-navigate document", "GET", "cross-site", "nested-navigate", "document"),
    ("HEAD nested-navigate document", "HEAD", "cross-site", "nested-navigate", "document"),
    (
        "GET nested-navigate nested-document",
        "GET",
        "cross-site",
        "nested-navigate",
        "nested-document",
    ),
    (
        "HEAD nested-navigate nested-document",
        "HEAD",
        "cross-site",
        "nested-navigate",
        "nested-document",
    ),
]

DISALLOWED_RIP_NAV = [
    ("cross origin POST", "POST", "cross-site", "navigate", "document"),
    ("cross origin GET from object", "GET", "cross-site", "navigate", "object"),
    ("cross origin HEAD from embed", "HEAD", "cross-site", "navigate", "embed"),
]

DISALLOWED_RIP = [
    ("cross origin cors", "POST", "cross-site", "cors", "document"),
    ("cross origin no cors", "POST", "cross-site", "no-cors", "nested-document"),
]


def ids(cases):
    return [c[0] for c in cases]


def make_request(method, site, mode, dest):
    h = Headers()
    h.add("Sec-Fetch-Site", site)
    h.add("Sec-Fetch-Mode", mode)
    h.add("Sec-Fetch-Dest", dest)
    return Request(method, "https://spaghetti.com/carbonara", headers=h)


class MethodLogger:
    def __init__(self):
        self.report = ""
        self.nav = False

    def log(self, request, navigation_isolation):
        self.report = request.method
        self.nav = navigation_isolation


def assert_passed(w):
    assert w.status == HTTPStatus.OK
    assert w.headers.as_dict() == {}
    assert w.body == ""


@pytest.mark.parametrize("case", ALLOWED_RIP + ALLOWED_RIP_NAV, ids=ids(ALLOWED_RIP + ALLOWED_RIP_NAV))
def test_allowed_resource_isolation_enforce_mode(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    fetchmetadata.Interceptor().before(w, make_request(method, site, mode, dest), None)
    assert_passed(w)


@pytest.mark.parametrize(
    "case", DISALLOWED_RIP + DISALLOWED_RIP_NAV, ids=ids(DISALLOWED_RIP + DISALLOWED_RIP_NAV)
)
def test_rejected_resource_isolation_enforce_mode(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    fetchmetadata.Interceptor().before(w, make_request(method, site, mode, dest), None)
    assert w.status == HTTPStatus.FORBIDDEN


@pytest.mark.parametrize("case", DISALLOWED_RIP, ids=ids(DISALLOWED_RIP))
def test_rejected_resource_isolation_enforce_mode_with_logger(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    logger = MethodLogger()
    fetchmetadata.Interceptor(logger=logger).before(w, make_request(method, site, mode, dest), None)
    assert w.status == HTTPStatus.FORBIDDEN
    assert logger.report == method
    assert logger.nav is False


@pytest.mark.parametrize(
    "case, report",
    [(c, "") for c in ALLOWED_RIP] + [(c, c[1]) for c in DISALLOWED_RIP],
    ids=ids(ALLOWED_RIP + DISALLOWED_RIP),
)
def test_resource_isolation_report_mode(case, report):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    logger = MethodLogger()
    p = fetchmetadata.Interceptor()
    p.logger = logger
    p.set_report_only()
    p.before(w, make_request(method, site, mode, dest), None)
    assert_passed(w)
    assert logger.report == report
    assert logger.nav is False


def test_report_mode_missing_logger():
    with pytest.raises(ValueError):
        fetchmetadata.Interceptor().set_report_only()


@pytest.mark.parametrize(
    "case", ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV, ids=ids(ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV)
)
def test_nav_isolation_enforce_mode(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    fetchmetadata.Interceptor(nav_isolation=True).before(
        w, make_request(method, site, mode, dest), None
    )
    assert w.status == HTTPStatus.FORBIDDEN


@pytest.mark.parametrize(
    "case", ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV, ids=ids(ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV)
)
def test_nav_isolation_report_mode(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    logger = MethodLogger()
    p = fetchmetadata.Interceptor(logger=logger, nav_isolation=True)
    p.set_report_only()
    p.before(w, make_request(method, site, mode, dest), None)
    assert_passed(w)
    assert logger.report == method
    assert logger.nav is True


@pytest.mark.parametrize(
    "case", ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV, ids=ids(ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV)
)
def test_disable(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    logger = MethodLogger()
    p = fetchmetadata.Interceptor(logger=logger, nav_isolation=True)
    p.before(w, make_request(method, site, mode, dest), fetchmetadata.disable("testing", False))
    assert_passed(w)
    assert logger.report == method
    assert logger.nav is True


@pytest.mark.parametrize(
    "case", ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV, ids=ids(ALLOWED_RIP_NAV + DISALLOWED_RIP_NAV)
)
def test_disable_skip_logger(case):
    _, method, site, mode, dest = case
    w = ResponseWriter()
    logger = MethodLogger()
    p = fetchmetadata.Interceptor(logger=logger, nav_isolation=True)
    p.before(w, make_request(method, site, mode, dest), fetchmetadata.disable("testing", True))
    assert_passed(w)
    assert logger.report == ""


def test_nav_isolation_redirects_when_url_set():
    w = ResponseWriter()
    p = fetchmetadata.Interceptor(nav_isolation=True, redirect_url="https://spaghetti.com/")
    p.before(w, make_request("GET", "cross-site", "navigate", "document"), None)
    assert w.status == HTTPStatus.SEE_OTHER
    assert w.written.location == "https://spaghetti.com/"


def test_resource_isolation_ignores_redirect_url():
    w = ResponseWriter()
    p = fetchmetadata.Interceptor(redirect_url="https://spaghetti.com/")
    p.before(w, make_request("POST", "cross-site", "cors", "document"), None)
    assert w.status == HTTPStatus.FORBIDDEN


def test_set_enforce_after_report_only():
    w = ResponseWriter()
    p = fetchmetadata.Interceptor(logger=MethodLogger())
    p.set_report_only()
    p.set_enforce()
    p.before(w, make_request("POST", "cross-site", "cors", "document"), None)
    assert w.status == HTTPStatus.FORBIDDEN


def test_match_recognizes_disable():
    p = fetchmetadata.Interceptor()
    assert p.match(fetchmetadata.disable("testing", False)) is True
    assert p.match(object()) is False