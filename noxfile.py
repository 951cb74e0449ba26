"""Nox sessions for the CWL bonus-medal bot."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"
PACKAGES = ("cwl_medals", "cwlbot")
COVERAGE_ARGS = [f"--cov={package}" for package in PACKAGES]


@nox.session(python=PYTHON)
def tests(session):
    """Run the test suite with coverage."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *COVERAGE_ARGS,
        "--cov-report=term-missing",
        "--cov-report=xml:coverage.xml",
        "--cov-fail-under=70",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    """Check style with ruff."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", *PACKAGES, "tests")
    session.run("ruff", "format", "--check", *PACKAGES, "tests")


@nox.session(python=PYTHON)
def format_code(session):
    session.install("ruff>=0.1.0")
    session.run("ruff", "format", *PACKAGES, "tests")
    session.run("ruff", "check", "--fix", *PACKAGES, "tests")


@nox.session(python=PYTHON)
def test_single(session):
    """Run one test file or node id, e.g. ``nox -s test_single -- tests/test_scoring.py``."""
    if not session.posargs:
        session.error("Please provide a test file or function to run")
    session.install("-e", ".[dev]")
    session.run("pytest", "-v", *session.posargs)


@nox.session(python=PYTHON)
def coverage_report(session):
    """Branch coverage with an HTML report in htmlcov/."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *COVERAGE_ARGS,
        "--cov-branch",
        "--cov-report=term-missing",
        "--cov-report=html:htmlcov",
        "--tb=short",
    )
    session.log("Coverage report generated in htmlcov/ directory")
