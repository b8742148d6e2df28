"""
Shared test fixtures for CloudBase SDK tests.

Provides fake transports, adapters and apps so no test touches the network
or the user's home directory.
"""

import pytest

from cloudbase_sdk.adapters.platform import PlatformInfo, Runtime
from cloudbase_sdk.adapters.web import CallbackLocation
from cloudbase_sdk.app import Cloudbase
from cloudbase_sdk.config import SDKConfig, TelemetryConfig
from cloudbase_sdk.events import EventBus

from tests.fakes import ENV, FakeTransport, ProviderHarness, make_platform


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a fake backend with no canned responses."""
    return FakeTransport()


@pytest.fixture
def location() -> CallbackLocation:
    """Provide a location with no pending OAuth code."""
    return CallbackLocation("https://app.example.com/login")


@pytest.fixture
def bus() -> EventBus:
    """Provide an isolated event bus."""
    return EventBus()


@pytest.fixture
def platform(transport: FakeTransport, location: CallbackLocation) -> PlatformInfo:
    """Provide a web platform backed by the fake transport."""
    return make_platform(transport, location=location)


@pytest.fixture
def native_platform(transport: FakeTransport) -> PlatformInfo:
    """Provide a native platform whose adapter reports no signature."""
    return make_platform(transport, runtime=Runtime.NATIVE)


@pytest.fixture
def app(platform: PlatformInfo, bus: EventBus) -> Cloudbase:
    """Provide an initialized app for the test env."""
    return Cloudbase(platform=platform, bus=bus).init(env=ENV)


@pytest.fixture
def base_config() -> SDKConfig:
    """Provide a basic SDK configuration for testing."""
    return SDKConfig(env=ENV, telemetry=TelemetryConfig(enabled=False))


@pytest.fixture
def harness() -> ProviderHarness:
    """Provide an open-platform WeChat provider returning from a redirect."""
    return ProviderHarness()
