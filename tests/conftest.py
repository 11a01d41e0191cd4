"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

from recipe_runner.ai.client import AIClient
from recipe_runner.artifacts.capture import ArtifactCapture
from recipe_runner.models.config import RunnerConfig
from recipe_runner.models.recipe import Priority, SelectorHint, TestRecipe, TestScenario
from recipe_runner.models.results import (
    ConsoleEntry,
    ExecutionResult,
    NetworkFailure,
    ScenarioResult,
    ScenarioStatus,
)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def runner_config(tmp_path: Path) -> RunnerConfig:
    """Enabled config writing everything under tmp_path."""
    return RunnerConfig(
        automation_enabled=True,
        base_url="https://staging.example.com",
        runs_dir=str(tmp_path / "runs"),
        public_artifacts_dir=str(tmp_path / "public"),
        public_base_url="https://qa.example.com",
        record_video=False,
        slow_mo_ms=0,
    )


# ============================================================================
# Recipe Fixtures
# ============================================================================


@pytest.fixture
def login_scenario() -> TestScenario:
    return TestScenario(
        name="User can log in",
        steps="1. Open /login\n2. Fill in email and password\n3. Click 'Sign in'",
        expected="Dashboard is shown with a welcome message",
        priority=Priority.SMOKE,
    )


@pytest.fixture
def sample_recipe(login_scenario: TestScenario) -> TestRecipe:
    return TestRecipe(scenarios=(
        login_scenario,
        TestScenario(name="Empty cart shows hint", priority="Edge Case",
                     expected="The text 'Your cart is empty' is visible"),
        TestScenario(name="Checkout completes", priority="critical_path",
                     steps="Add an item and check out", expected="Order confirmation appears"),
    ))


@pytest.fixture
def selector_hints() -> list[SelectorHint]:
    return [
        SelectorHint(type="data-testid", value="login-email", file="src/Login.tsx"),
        SelectorHint(type="data-testid", value="login-password", file="src/Login.tsx"),
        SelectorHint(type="id", value="signin-button", file="src/Login.tsx"),
    ]


# ============================================================================
# Result Fixtures
# ============================================================================


def make_scenario_result(
    name: str = "Scenario",
    status: ScenarioStatus = ScenarioStatus.PASS,
    priority: Priority = Priority.HAPPY_PATH,
    duration_ms: int = 2000,
    error: Optional[str] = None,
    **kwargs,
) -> ScenarioResult:
    data = {
        "scenario": name,
        "priority": priority,
        "steps": f"Steps for {name}",
        "status": status,
        "expected": f"Expected for {name}",
        "actual": kwargs.pop("actual", "As expected" if status == ScenarioStatus.PASS else "Broken"),
        "duration_ms": duration_ms,
        "error": error,
    }
    data.update(kwargs)
    return ScenarioResult(**data)


@pytest.fixture
def scenario_factory():
    return make_scenario_result


@pytest.fixture
def passing_result() -> ExecutionResult:
    return ExecutionResult.from_scenarios(
        "a1b2c3d4e5f6a7b8",
        [make_scenario_result("User can log in", priority=Priority.SMOKE, duration_ms=3200)],
        base_url="https://staging.example.com",
        duration_ms=4500,
    )


@pytest.fixture
def mixed_result() -> ExecutionResult:
    return ExecutionResult.from_scenarios(
        "f00dfeedcafe0001",
        [
            make_scenario_result("Login works", priority=Priority.SMOKE, duration_ms=2500),
            make_scenario_result(
                "Checkout fails", status=ScenarioStatus.FAIL, priority=Priority.CRITICAL_PATH,
                duration_ms=4000, error="'Order confirmed' not found in 'body'",
                actual="'Order confirmed' not found in 'body'",
                screenshot_path="/tmp/scenario-2.png",
                console_logs=[ConsoleEntry(type="error", text="TypeError: x is undefined")],
                network_errors=[NetworkFailure(url="https://api.example.com/orders", method="POST",
                                               failure="net::ERR_CONNECTION_REFUSED")],
            ),
            make_scenario_result(
                "Profile page crashes", status=ScenarioStatus.ERROR, priority=Priority.EDGE_CASE,
                duration_ms=1500, error="Timeout 30000ms exceeded.", actual="Error: Timeout 30000ms exceeded.",
            ),
            make_scenario_result("Legacy link", status=ScenarioStatus.SKIP, priority=Priority.UNKNOWN,
                                 duration_ms=0),
        ],
        base_url="https://staging.example.com",
        duration_ms=12000,
    )


# ============================================================================
# Browser / AI Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_locator() -> Mock:
    locator = Mock()
    locator.wait_for = AsyncMock()
    locator.inner_text = AsyncMock(return_value="Welcome back, Test User")
    return locator


@pytest.fixture
def mock_page(mock_locator: Mock) -> AsyncMock:
    """Mock Playwright page; sync members are plain Mocks."""
    page = AsyncMock()
    page.url = "https://staging.example.com/dashboard"
    page.title.return_value = "Dashboard"
    page.inner_text.return_value = "Welcome back, Test User"
    page.on = Mock()
    page.remove_listener = Mock()
    page.is_closed = Mock(return_value=False)
    page.set_default_timeout = Mock()
    page.locator = Mock(return_value=Mock(first=mock_locator))
    return page


class FakeSession:
    """Stands in for BrowserSession; records lifecycle calls."""

    def __init__(self, page, video_dir: Optional[Path] = None):
        self.page = page
        self.video_dir = video_dir
        self.recover = AsyncMock()
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True


@pytest.fixture
def fake_session(mock_page: AsyncMock) -> FakeSession:
    return FakeSession(mock_page)


@pytest.fixture
def session_factory(fake_session: FakeSession):
    def factory(video_dir):
        fake_session.video_dir = video_dir
        return fake_session
    return factory


@pytest.fixture
def mock_ai_client() -> Mock:
    client = Mock(spec=AIClient)
    client.complete_json.return_value = {}
    client.complete_json_with_image.return_value = {}
    return client


@pytest.fixture
def capture(tmp_path: Path) -> ArtifactCapture:
    return ArtifactCapture(tmp_path / "runs", "exec-0001", record_video=False)
