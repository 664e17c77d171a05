"""Root conftest for API tests.

Provides:
- A fresh EventBus singleton and job registry per test
- FastAPI AsyncClient over ASGITransport
- A helper to wait for background conversion jobs
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import app.event_bus as event_bus_module
from app.routes import conversion as conversion_module


@pytest.fixture(autouse=True)
def reset_app_state():
    """Each test gets its own EventBus and an empty job registry."""
    event_bus_module._bus = None
    conversion_module._jobs.clear()
    yield
    event_bus_module._bus = None
    conversion_module._jobs.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI routes."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def wait_for_jobs():
    """Await every background conversion started so far."""
    async def _wait() -> None:
        tasks = list(conversion_module._background_tasks)
        if tasks:
            await asyncio.gather(*tasks)
    return _wait


@pytest.fixture
def inline_document():
    """Single-node REST document for inline conversions."""
    return {
        "id": "1:1",
        "name": "Button",
        "type": "FRAME",
        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 40},
        "children": [
            {
                "id": "1:2",
                "name": "Background",
                "type": "RECTANGLE",
                "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 40},
                "fills": [
                    {
                        "type": "SOLID",
                        "blendMode": "NORMAL",
                        "color": {"r": 1, "g": 0, "b": 0, "a": 1},
                        "boundVariables": {
                            "color": {"type": "VARIABLE_ALIAS", "id": "VariableID:9:1"},
                        },
                    }
                ],
            }
        ],
    }
