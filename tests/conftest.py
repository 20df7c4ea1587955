"""
Pytest configuration and shared fixtures.
"""

from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio

from config import settings
from db.memory_store import InMemorySchedulingStore
from models.schedule import DaySchedule, Professional, Shift, WorkingHours
from models.service import Service

# 2026-01-12 is a Monday
MONDAY = date(2026, 1, 12)
TUESDAY = date(2026, 1, 13)
PROFESSIONAL_ID = "pro-1"
SERVICE_ID = "svc-45"


@pytest.fixture(autouse=True)
def mock_settings():
    """Pin settings for all tests."""
    with patch.multiple(
        settings,
        environment="test",
        storage_backend="memory",
        timezone="America/Sao_Paulo",
        slot_step_minutes=None,
        allow_past_bookings=False,
        supabase_url="https://test.supabase.co",
        supabase_key="test_key",
        log_level="INFO",
        log_file=None,
    ):
        yield settings


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table


@pytest.fixture
def working_hours():
    """Mondays 09:00-12:00, nothing else."""
    return WorkingHours(monday=DaySchedule(shifts=[Shift(start="09:00", end="12:00")]))


@pytest.fixture
def professional(working_hours):
    return Professional(id=PROFESSIONAL_ID, name="Ana Souza", working_hours=working_hours)


@pytest.fixture
def service():
    return Service(
        id=SERVICE_ID,
        name="Corte masculino",
        duration_minutes=45,
        price=60.0,
        professional_id=PROFESSIONAL_ID,
    )


@pytest.fixture
def now():
    """Local wall-clock 'now', one week before MONDAY."""
    return datetime(2026, 1, 5, 8, 0)


@pytest_asyncio.fixture
async def store(professional, service):
    """In-memory store seeded with one professional and a 45-minute service."""
    store = InMemorySchedulingStore()
    await store.save_professional(professional)
    await store.save_service(service)
    return store
