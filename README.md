# webguard

Security interceptors for web applications. An interceptor inspects an
incoming request before a handler runs and either lets it through, sets
protective response headers, or answers the request itself with an error,
a redirect or an empty `204 No Content`.

The package has no dependencies outside the standard library. The `test`
extra adds pytest for running the test suite.

## Modules

| Module                   | Purpose                                                                  |
|--------------------------|--------------------------------------------------------------------------|
| `webguard.core`          | `Request`, claimable `Headers`, `ResponseWriter`, response and result types |
| `webguard.hostcheck`     | Reject requests whose host is not in an allowlist (404)                  |
| `webguard.hsts`          | Redirect HTTP to HTTPS (301) and set `Strict-Transport-Security`         |
| `webguard.coop`          | Set `Cross-Origin-Opener-Policy`, enforced and report-only               |
| `webguard.reportingapi`  | Add one `Report-To` header per reporting group                           |
| `webguard.cors`          | Handle CORS preflight and other requests, guarding against XSRF          |
| `webguard.fetchmetadata` | Resource and navigation isolation based on the `Sec-Fetch-*` headers     |
| `webguard.htmlinject`    | Rewrite HTML templates to add CSP nonces and XSRF token inputs           |
| `webguard.csp`           | Strict, framing and Trusted Types Content-Security-Policies with nonces  |
| `webguard.collector`     | Parse Reporting API and CSP violation reports                            |

## Core types

- `Request(method, url="/", headers=Headers(), body=b"", tls=None)` is an
  incoming request. A URL without a host is placed under `http://example.com`;
  when `tls` is not given it is true for `https` URLs. `Request.host()` returns
  the host (and port) of the URL. `flight_values` is a dict for per-request
  values, such as the CSP nonce.
- `Headers` holds multi-valued, case-insensitive headers with `get`, `set`,
  `add`, `values` and `as_dict`. Names are stored in canonical form
  (`canonical_header_key("x-cors") == "X-Cors"`).
- `Headers.claim(name)` reserves a header and returns the only function that
  may set it afterwards; setting an empty list removes the header. Claiming a
  header twice, or calling `set`/`add` on a claimed header, raises
  `HeaderClaimedError`. `Headers.is_claimed(name)` tells whether a header has
  been claimed.
- `ResponseWriter` collects `headers`, `status` (200 by default) and `body`.
  `write(response)` records a `NoContentResponse` (status 204) or a
  `RedirectResponse` (status and `Location` header); `write_error(status)`
  sets the status and a body of the status phrase followed by a newline;
  `redirect(request, location, status)` writes a redirect and raises
  `ValueError` for a status outside 300–399. Only one response can be written:
  a second write raises `RuntimeError`.
- `not_written()` is the `Result` an interceptor returns when it leaves the
  response to the handler; the writer methods return a `Result` with
  `written=True`.

## Interceptors

Every interceptor has the same three methods:

- `before(w, r, cfg)` runs before the handler.
- `commit(w, r, resp, cfg)` runs just before a response is written. Only the
  CSP interceptor does work here; the others reject configuration objects
  they do not recognize with `TypeError`.
- `match(cfg)` tells whether a per-handler configuration belongs to the
  interceptor. Only `coop.Overrider` and the object returned by
  `fetchmetadata.disable` are recognized.

### Host check

```python
from webguard import hostcheck

interceptor = hostcheck.Interceptor("example.com", "www.example.com")
```

### HSTS

```python
from datetime import timedelta
from webguard import hsts

interceptor = hsts.default()  # max-age two years, includeSubDomains
custom = hsts.Interceptor(max_age=timedelta(hours=1), preload=True)
```

Requests without TLS are redirected to the `https` URL unless
`behind_proxy=True`. A negative `max_age` answers 500.

### COOP

```python
from webguard import coop

interceptor = coop.default("coop")  # same-origin; report-to "coop"
interceptor = coop.new_interceptor(
    coop.Policy(coop.Mode.SAME_ORIGIN_ALLOW_POPUPS),
    coop.Policy(coop.Mode.SAME_ORIGIN, reporting_group="coop", report_only=True),
)
config = coop.override("legacy popup flow", coop.Policy(coop.Mode.UNSAFE_NONE))
```

Passing an `Overrider` as `cfg` to `before` applies its policies instead.

### Reporting API

```python
from webguard import reportingapi

group = reportingapi.new_group("coop", "https://example.com/reports")
interceptor = reportingapi.Interceptor(group)
```

`new_group` uses `DEFAULT_MAX_AGE` (seven days). `Group.to_json()` gives the
compact JSON header value; zero priority and weight are left out.

### CSP

```python
from webguard import csp

interceptor = csp.default("https://example.com/collector")
strict = csp.StrictPolicy(unsafe_eval=True, hashes=("sha256-placeholder",))
interceptor = csp.Interceptor(enforce=(strict,), report_only=(csp.FramingPolicy(),))
```

`before` generates a fresh nonce with `generate_nonce()`, stores it on the
request (read it back with `csp.nonce(request)`, which raises `LookupError`
when there is none) and sets `Content-Security-Policy` and
`Content-Security-Policy-Report-Only`. `commit` adds a `CSPNonce` function
returning the nonce to the `func_map` of a `TemplateResponse`.

### HTML injection

```python
from webguard import htmlinject

html = htmlinject.transform(
    '<script src="app.js"></script><form></form>',
    htmlinject.CSP_NONCES_DEFAULT,
    htmlinject.XSRF_TOKENS_DEFAULT,
)
# '<script nonce="{{CSPNonce}}" src="app.js"></script>'
# '<form><input type="hidden" name="xsrf-token" value="{{XSRFToken}}"></form>'
```

`transform` accepts a string, bytes or a readable file object, and any
number of rule tuples. `csp_nonces(attr)` and `xsrf_tokens(tag)` build rules
with other attribute or node text; custom `Rule` objects can match on tag
name and attribute values.

### CORS

```python
from webguard import cors

interceptor = cors.default("https://app.example.com")
interceptor.set_allowed_headers("X-Requested-With")
interceptor.exposed_headers = ["X-Request-Id"]
interceptor.allow_credentials = True
```

Requests from other origins get 403. Non-preflight requests must carry
`X-Cors: 1` (412 otherwise) and a content type other than form-like ones
(415). `HEAD` answers 405. Preflight (`OPTIONS`) requests answer 204 with the
allowed method, headers and `Access-Control-Max-Age` (5 seconds unless
`max_age` is set).

### Fetch Metadata

```python
from webguard import fetchmetadata

interceptor = fetchmetadata.Interceptor(nav_isolation=False)
config = fetchmetadata.disable("public webhook", False)
```

Cross-site requests that are not simple `GET`/`HEAD` navigations get 403.
With a `logger` (any object with `log(request, navigation_isolation)`)
violations are reported, and `set_report_only()` lets them through; without
a logger it raises `ValueError`. `redirect_url` sends requests rejected by
navigation isolation there with 303.

### Collecting reports

```python
from webguard import collector

serve = collector.handler(
    lambda report: print(report.type, report.body),
    lambda csp_report: print(csp_report.blocked_url),
)
result = serve(writer, request)
```

The returned function accepts `POST` requests with a `Content-Type` of
`application/reports+json` (passing each `Report` to the first callback) or
`application/csp-report` (passing a `CSPReport` to the second), and answers
204. Other methods get 405, other content types 415, malformed bodies 400.

## Local development

`core.set_local_dev(True)` turns off the HTTPS redirect and the
`Strict-Transport-Security` header; `core.is_local_dev()` reports the
current setting.

## What the package does not do

There is no HTTP server, router or mux here: nothing runs interceptors in
order or calls handlers for you. An application calls `before` and `commit`
itself with its own `Request` and `ResponseWriter`. `htmlinject` only rewrites
template text; it does not load, parse or render templates.