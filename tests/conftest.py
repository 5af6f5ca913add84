"""Test configuration."""

import os
from collections.abc import Generator
from pathlib import Path
from typing import List

import pytest
from dotenv import load_dotenv
from pytest import Config

# Must be set before app modules read settings
os.environ["TESTING"] = "true"

from app.core.logging import configure_logging  # noqa: E402

project_dir = Path(__file__).parent.parent
env_test_file = project_dir / ".env.test"
if env_test_file.exists():
    load_dotenv(env_test_file, override=True)

fixture = pytest.fixture

pytest_plugins: List[str] = [
    "tests.fixtures.stores",
    "tests.fixtures.geocoding",
    "tests.fixtures.api",
]


@fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return project_dir


@fixture(scope="session", autouse=True)
def testing_environment() -> Generator[None, None, None]:
    """Keep the process in test mode for the whole session."""
    previous = os.environ.get("TESTING")
    os.environ["TESTING"] = "true"
    yield
    if previous is None:
        os.environ.pop("TESTING", None)
    else:
        os.environ["TESTING"] = previous


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    # Configure logging for test environment
    configure_logging(testing=True)
    config.addinivalue_line("markers", "integration: mark test as an integration test")
