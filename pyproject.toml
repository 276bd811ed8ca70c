[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webguard"
version = "0.1.0"
description = "Security interceptors for web applications: CSP, CORS, COOP, HSTS, Fetch Metadata, host checks, Report-To headers, violation report collection and HTML template injection."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "security",
    "http",
    "csp",
    "cors",
    "hsts",
    "coop",
    "fetch-metadata",
    "xsrf",
    "reporting-api",
    "web",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["webguard"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
