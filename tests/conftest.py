import sys
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from leasedesk.api.dependencies import get_state, get_today  # noqa: E402
from leasedesk.auth.jwt import get_current_user  # noqa: E402
from leasedesk.main import app  # noqa: E402
from leasedesk.models.models import (  # noqa: E402
    FinancialSettings,
    Owner,
    Partner,
    Permission,
    Property,
    Tenant,
    User,
    new_id,
)
from leasedesk.services.store import AppState  # noqa: E402

TODAY = date(2025, 1, 1)


@pytest.fixture
def state() -> AppState:
    """Empty in-memory state with zero margins and no sign-off threshold."""
    return AppState(financial_settings=FinancialSettings())


@pytest.fixture
def create_user(state: AppState) -> Callable[..., User]:
    counter = {"value": 0}

    def _create(
        role: str = "software_tenant",
        permissions: Optional[List[Permission]] = None,
        status: str = "active",
        email: Optional[str] = None,
        **fields,
    ) -> User:
        counter["value"] += 1
        user = User(
            id=fields.pop("id", None) or new_id("user"),
            name=fields.pop("name", f"User {counter['value']}"),
            email=email or f"user{counter['value']}@example.com",
            role=role,
            status=status,
            permissions=permissions or [],
            **fields,
        )
        state.users.add(user)
        return user

    return _create


@pytest.fixture
def create_owner(state: AppState) -> Callable[..., Owner]:
    def _create(name: str = "Ana Silva") -> Owner:
        return state.owners.add(Owner(id=new_id("owner"), name=name))

    return _create


@pytest.fixture
def create_property(state: AppState) -> Callable[..., Property]:
    counter = {"value": 0}

    def _create(owner: Optional[Owner] = None, profile_type: str = "long_term", name: Optional[str] = None) -> Property:
        counter["value"] += 1
        prop = Property(
            id=new_id("prop"),
            name=name or f"{counter['value']} Harbor Street",
            owner_id=owner.id if owner else None,
            profile_type=profile_type,
        )
        return state.properties.add(prop)

    return _create


@pytest.fixture
def create_partner(state: AppState) -> Callable[..., Partner]:
    def _create(name: str = "CleanFast", email: Optional[str] = None, **fields) -> Partner:
        return state.partners.add(Partner(id=new_id("partner"), name=name, email=email, **fields))

    return _create


@pytest.fixture
def create_tenant(state: AppState) -> Callable[..., Tenant]:
    def _create(prop: Property, lease_end: Optional[str] = "2025-01-11", **fields) -> Tenant:
        fields.setdefault("rent_value", Decimal("1000"))
        tenant = Tenant(
            id=new_id("tenant"),
            name=fields.pop("name", "Ines Rocha"),
            property_id=prop.id,
            lease_start=fields.pop("lease_start", "2024-01-11"),
            lease_end=lease_end,
            **fields,
        )
        return state.tenants.add(tenant)

    return _create


@pytest.fixture
def client_as(state: AppState) -> Generator[Callable[[User], TestClient], None, None]:
    """TestClient bound to ``state`` and authenticated as the given user."""
    client = TestClient(app)

    def _client(user: User) -> TestClient:
        app.dependency_overrides[get_state] = lambda: state
        app.dependency_overrides[get_today] = lambda: TODAY
        app.dependency_overrides[get_current_user] = lambda: user
        return client

    try:
        yield _client
    finally:
        client.close()
        app.dependency_overrides.clear()
