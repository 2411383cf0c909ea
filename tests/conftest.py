"""
Pytest configuration and fixtures for agentgate tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from agentgate.classifier import Classifier
from agentgate.schema import GuardResponse, IssuerConfig
from agentgate.tickets import TicketIssuer

TEST_SIGNING_KEY = "test-secret-key-for-testing-only"


class StubClassifier(Classifier):
    """Classifier that returns a canned verdict and records its inputs."""

    def __init__(self, classification: str = "pass", reasoning: str = "looks good") -> None:
        self.response = GuardResponse(classification=classification, reasoning=reasoning)
        self.calls: list[str] = []

    async def classify(self, text: str) -> GuardResponse:
        self.calls.append(text)
        return self.response


class FailingClassifier(Classifier):
    """Classifier that always raises."""

    def __init__(self, message: str = "API rate limited") -> None:
        self.message = message
        self.calls = 0

    async def classify(self, text: str) -> GuardResponse:
        self.calls += 1
        raise RuntimeError(self.message)


@pytest.fixture
def issuer_config() -> IssuerConfig:
    """Return an HS256 issuer configuration."""
    return IssuerConfig(
        signing_key=TEST_SIGNING_KEY,
        issuer="test-issuer",
        algorithm="HS256",
        default_validity=300,
    )


@pytest.fixture
def issuer(issuer_config: IssuerConfig) -> TicketIssuer:
    """Return a ticket issuer."""
    return TicketIssuer(issuer_config)


@pytest.fixture
def valid_constraints() -> dict[str, Any]:
    """Return constraints for a typical ticket."""
    return {
        "max_op_value": 100,
        "allowed_servers": ["server-a", "server-b"],
        "kill_switch_active": False,
    }


@pytest.fixture
def passing_classifier() -> StubClassifier:
    """Return a classifier that passes everything."""
    return StubClassifier("pass", "looks good")


@pytest.fixture
def blocking_classifier() -> StubClassifier:
    """Return a classifier that blocks everything."""
    return StubClassifier("block", "suspicious request")


@pytest.fixture
def failing_classifier() -> FailingClassifier:
    """Return a classifier that always raises."""
    return FailingClassifier()


@pytest.fixture
def mock_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Return a factory for AsyncClients backed by a handler function."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def make_classifier() -> Callable[[str, str], StubClassifier]:
    """Return a factory for canned-verdict classifiers."""
    return StubClassifier
