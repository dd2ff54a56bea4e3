import asyncio
import inspect
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.config import LimitSettings, Settings
from app.main import create_app


class FakeClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_settings(
    *,
    api_limit: Optional[LimitSettings] = None,
    auth_limit: Optional[LimitSettings] = None,
    password_change_limit: Optional[LimitSettings] = None,
    admin_reset_secret: Optional[str] = "reset-secret",
) -> Settings:
    return Settings(
        api_limit=api_limit or LimitSettings(max_requests=100, window_ms=60_000),
        auth_limit=auth_limit or LimitSettings(max_requests=5, window_ms=60_000),
        password_change_limit=password_change_limit or LimitSettings(max_requests=3, window_ms=900_000),
        backend_url="http://backend.test",
        backend_api_key=None,
        admin_reset_secret=admin_reset_secret,
        exempt_paths=("/health", "/metrics"),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def app(clock):
    return create_app(make_settings(), clock=clock)


@pytest.fixture()
def client(app):
    """Provide a FastAPI TestClient for API tests."""
    return TestClient(app)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run async test functions without requiring pytest-asyncio plugin."""

    test_func = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_func):
        loop = asyncio.new_event_loop()
        try:
            funcargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_func(**funcargs))
        finally:
            loop.close()
        return True
    return None
