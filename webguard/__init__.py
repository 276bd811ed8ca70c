"""Security interceptors for web applications: CSP, CORS, COOP, HSTS, Fetch Metadata,
host checks, Report-To headers, violation report collection and HTML injection."""

__version__ = "0.1.0"

__all__ = [
    "collector",
    "coop",
    "core",
    "cors",
    "csp",
    "fetchmetadata",
    "hostcheck",
    "hsts",
    "htmlinject",
    "reportingapi",
]