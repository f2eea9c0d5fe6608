"""Pytest configuration and fixtures for ADAX Cloud tests."""

from collections.abc import Iterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock, patch

import pytest

from custom_components.adax_cloud.models import Home, Room, TokenState

ROOM_ID = 101
OTHER_ROOM_ID = 202
ACCESS_TOKEN = "test_access_token"


def create_token_state(expires_in: int = 3600) -> TokenState:
    """Create a token state issued now.

    Args:
        expires_in: Lifetime of the token in seconds. A negative value creates
            an already expired token.

    Returns:
        A TokenState carrying ACCESS_TOKEN.

    """
    now = int(datetime.now(UTC).timestamp())
    return TokenState(
        access_token=ACCESS_TOKEN,
        refresh_token="test_refresh_token",
        expires_in=expires_in,
        expire_at=now + expires_in,
    )


@pytest.fixture
def valid_token_state() -> TokenState:
    """Fixture providing a token valid for one hour."""
    return create_token_state()


@pytest.fixture
def expired_token_state() -> TokenState:
    """Fixture providing a token that expired a second ago."""
    return create_token_state(expires_in=-1)


@pytest.fixture
def sample_token_response() -> dict:
    """Fixture providing a sample password grant response."""
    return {
        "access_token": ACCESS_TOKEN,
        "refresh_token": "test_refresh_token",
        "expires_in": 3600,
    }


@pytest.fixture
def sample_content_response() -> dict:
    """Fixture providing a sample content API response with two rooms."""
    return {
        "rooms": [
            {
                "id": ROOM_ID,
                "name": "Living room",
                "heatingEnabled": True,
                "temperature": 2050,
                "targetTemperature": 2200,
            },
            {
                "id": OTHER_ROOM_ID,
                "name": "Bedroom",
                "heatingEnabled": False,
                "temperature": 1800,
                "targetTemperature": 1600,
            },
        ],
    }


@pytest.fixture
def sample_home() -> Home:
    """Fixture providing the Home matching sample_content_response."""
    return Home(
        rooms=(
            Room(
                id=ROOM_ID,
                name="Living room",
                heating_enabled=True,
                temperature=2050,
                target_temperature=2200,
            ),
            Room(
                id=OTHER_ROOM_ID,
                name="Bedroom",
                heating_enabled=False,
                temperature=1800,
                target_temperature=1600,
            ),
        )
    )


@pytest.fixture
def mock_sleep() -> Iterator[AsyncMock]:
    """Replace asyncio.sleep so backoff delays are recorded, not waited."""
    with patch(
        "custom_components.adax_cloud.api.asyncio.sleep",
        new_callable=AsyncMock,
    ) as sleep:
        yield sleep


@pytest.fixture
def no_jitter() -> Iterator[Mock]:
    """Disable the jitter applied before snapshot fetches."""
    with patch(
        "custom_components.adax_cloud.state.jitter_delay",
        return_value=0.0,
    ) as jitter:
        yield jitter
