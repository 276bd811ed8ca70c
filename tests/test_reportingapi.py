import json

import pytest

from webguard import reportingapi
from webguard.core import Request, ResponseWriter
from webguard.reportingapi import Endpoint, Group


@pytest.mark.parametrize(
    "group, want",
    [
        (
            Group(name="group-name", endpoints=(Endpoint(url="https://foo.bar"),)),
            '{"group":"group-name","max_age":0,"endpoints":[{"url":"https://foo.bar"}]}',
        ),
        (
            Group(
                name="name",
                include_subdomains=True,
                max_age=100,
                endpoints=(Endpoint(url="https://foo.bar", priority=2, weight=3),),
            ),
            '{"group":"name","include_subdomains":true,"max_age":100,'
            '"endpoints":[{"url":"https://foo.bar","priority":2,"weight":3}]}',
        ),
    ],
)
def test_json_tags(group, want):
    assert group.to_json() == want


@pytest.mark.parametrize(
    "groups, want",
    [
        (
            [reportingapi.new_group("test", "https://fuffa.buffa/reporting")],
            ['{"group":"test","max_age":604800,"endpoints":[{"url":"https://fuffa.buffa/reporting"}]}'],
        ),
        (
            [reportingapi.new_group("test", "https://fuffa.buffa/reporting1", "https://fuffa.buffa/reporting2")],
            [
                '{"group":"test","max_age":604800,"endpoints":[{"url":"https://fuffa.buffa/reporting1"},'
                '{"url":"https://fuffa.buffa/reporting2"}]}'
            ],
        ),
        (
            [
                reportingapi.new_group("test1", "https://fuffa.buffa/reporting1"),
                reportingapi.new_group("test2", "https://fuffa.buffa/reporting2"),
            ],
            [
                '{"group":"test1","max_age":604800,"endpoints":[{"url":"https://fuffa.buffa/reporting1"}]}',
                '{"group":"test2","max_age":604800,"endpoints":[{"url":"https://fuffa.buffa/reporting2"}]}',
            ],
        ),
    ],
)
def test_before(groups, want):
    w = ResponseWriter()
    res = reportingapi.Interceptor(*groups).before(w, Request("GET", "/"), None)
    assert res.written is False
    assert sorted(w.headers.values("Report-To")) == sorted(want)


def test_new_group_defaults():
    g = reportingapi.new_group("test", "https://fuffa.buffa/reporting")
    assert g.max_age == reportingapi.DEFAULT_MAX_AGE
    assert g.include_subdomains is False
    assert g.endpoints == (Endpoint(url="https://fuffa.buffa/reporting"),)


def test_json_round_trip_and_escaping():
    g = Group(name="g", endpoints=(Endpoint(url="https://foo.bar/?a=1&b=<2>"),))
    text = g.to_json()
    assert "&" not in text and "<" not in text and ">" not in text
    assert json.loads(text) == g.to_dict()


def test_no_groups_no_headers():
    w = ResponseWriter()
    reportingapi.Interceptor().before(w, Request("GET", "/"), None)
    assert w.headers.as_dict() == {}


def test_match_is_false():
    assert reportingapi.Interceptor().match(None) is False