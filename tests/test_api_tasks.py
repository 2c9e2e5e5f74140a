from decimal import Decimal

from leasedesk.models.models import FinancialSettings, Permission, ServiceRate

MANAGER_GRANTS = [Permission(resource="tasks", actions=["view", "create", "edit"])]


def _payload(prop, partner, **fields):
    payload = {
        "title": "Turnover cleaning",
        "property_id": prop.id,
        "type": "cleaning",
        "assignee_id": partner.id,
        "date": "2025-01-10",
        "labor_cost": "200",
    }
    payload.update(fields)
    return payload


def test_task_lifecycle_over_http(state, client_as, create_user, create_property, create_partner):
    state.financial_settings = FinancialSettings(labor_margin_pct=Decimal("15"))
    manager = create_user(permissions=MANAGER_GRANTS)
    prop = create_property()
    partner = create_partner()
    client = client_as(manager)

    response = client.post("/tasks/", json=_payload(prop, partner))
    assert response.status_code == 201
    task = response.json()
    assert task["status"] == "pending"
    assert Decimal(task["billable_amount"]) == Decimal("230")

    response = client.post(f"/tasks/{task['id']}/status", json={"status": "completed"})
    assert response.status_code == 409

    for status in ("in_progress", "approved", "completed"):
        response = client.post(f"/tasks/{task['id']}/status", json={"status": status})
        assert response.status_code == 200, response.text
    assert response.json()["status"] == "completed"
    assert len(state.ledger_entries) == 1

    response = client.get("/tasks/", params={"status": "completed"})
    assert [item["id"] for item in response.json()] == [task["id"]]


def test_create_task_returns_field_errors(client_as, create_user):
    client = client_as(create_user(permissions=MANAGER_GRANTS))

    response = client.post("/tasks/", json={"title": "", "type": "cleaning"})

    assert response.status_code == 422
    body = response.json()
    assert set(body["errors"]) == {"title", "property_id", "assignee_id", "date"}


def test_create_task_from_service_rate_template(state, client_as, create_user, create_property, create_partner):
    manager = create_user(permissions=MANAGER_GRANTS)
    prop = create_property()
    partner = create_partner()
    rate = state.service_rates.add(
        ServiceRate(id="rate-1", service_name="Deep clean", partner_payment=Decimal("80"), product_price=Decimal("15"))
    )
    client = client_as(manager)

    payload = _payload(prop, partner, service_rate_id=rate.id)
    del payload["title"]
    del payload["labor_cost"]
    response = client.post("/tasks/", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Deep clean"
    assert Decimal(body["billable_amount"]) == Decimal("95")

    response = client.post("/tasks/", json=_payload(prop, partner, service_rate_id="rate-missing"))
    assert response.status_code == 422
    assert response.json()["errors"] == {"service_rate_id": "Service rate not found."}


def test_edit_evidence_and_notify(state, client_as, create_user, create_property, create_partner):
    manager = create_user(permissions=MANAGER_GRANTS)
    prop = create_property()
    partner = create_partner()
    client = client_as(manager)
    task_id = client.post("/tasks/", json=_payload(prop, partner)).json()["id"]

    response = client.patch(f"/tasks/{task_id}", json={"priority": "critical", "description": "Guests arrive at 3pm"})
    assert response.status_code == 200
    assert response.json()["priority"] == "critical"

    response = client.patch(f"/tasks/{task_id}", json={"date": "tomorrow"})
    assert response.status_code == 422
    assert response.json()["errors"] == {"date": "Enter a valid date."}

    response = client.post(
        f"/tasks/{task_id}/evidence",
        json={"url": "https://cdn.example.com/arrival.jpg", "type": "arrival", "location": {"lat": 38.7, "lng": -9.1}},
    )
    assert response.status_code == 201
    assert response.json()["evidence"][0]["type"] == "arrival"

    response = client.post(f"/tasks/{task_id}/images", json={"url": "https://cdn.example.com/after.jpg"})
    assert response.json()["images"] == ["https://cdn.example.com/after.jpg"]

    response = client.post(f"/tasks/{task_id}/notify")
    assert response.status_code == 200
    assert response.json()["last_notified"] is not None

    assert client.patch("/tasks/task-missing", json={"priority": "low"}).status_code == 404


def test_partner_cannot_touch_other_partners_tasks(state, client_as, create_user, create_property, create_partner):
    manager = create_user(permissions=MANAGER_GRANTS)
    prop = create_property()
    partner = create_partner()
    client = client_as(manager)
    task_id = client.post("/tasks/", json=_payload(prop, partner)).json()["id"]

    outsider = create_user(role="partner", email="other@elsewhere.local", permissions=MANAGER_GRANTS)
    client = client_as(outsider)

    assert client.get("/tasks/").json() == []
    assert client.post(f"/tasks/{task_id}/status", json={"status": "in_progress"}).status_code == 403
    assert client.post(f"/tasks/{task_id}/notify").status_code == 403
    assert state.tasks.get(task_id).last_notified is None
    assert [entry.action for entry in state.audit_logs] == ["tasks.create"]


def test_users_without_task_grants_are_forbidden(client_as, create_user):
    client = client_as(create_user(permissions=[]))

    assert client.get("/tasks/").status_code == 403
    assert client.post("/tasks/", json={}).status_code == 403


def test_partners_cannot_reassign_or_reprice_their_tasks(state, client_as, create_user, create_property, create_partner):
    manager = create_user(permissions=MANAGER_GRANTS)
    prop = create_property()
    partner = create_partner(email="ops@cleanfast.local")
    rival = create_partner(name="FixIt", email="ops@fixit.local")
    task_id = client_as(manager).post("/tasks/", json=_payload(prop, partner)).json()["id"]

    partner_user = create_user(role="partner", email="ops@cleanfast.local", permissions=MANAGER_GRANTS)
    client = client_as(partner_user)

    assert client.patch(f"/tasks/{task_id}", json={"assignee_id": rival.id}).status_code == 403
    assert client.patch(f"/tasks/{task_id}", json={"labor_cost": "5"}).status_code == 403
    task = state.tasks.get(task_id)
    assert task.assignee_id == partner.id
    assert task.labor_cost == Decimal("200")

    response = client.patch(f"/tasks/{task_id}", json={"description": "Keys in the lockbox"})
    assert response.status_code == 200
    assert response.json()["description"] == "Keys in the lockbox"


def test_profile_type_restriction_hides_other_properties_tasks(state, client_as, create_user, create_property, create_partner):
    manager = create_user(permissions=MANAGER_GRANTS)
    long_term = create_property()
    short_term = create_property(profile_type="short_term")
    partner = create_partner()
    client = client_as(manager)
    hidden_id = client.post("/tasks/", json=_payload(long_term, partner)).json()["id"]
    shown_id = client.post("/tasks/", json=_payload(short_term, partner)).json()["id"]

    restricted = create_user(role="internal_user", permissions=MANAGER_GRANTS, allowed_profile_types=["short_term"])
    client = client_as(restricted)

    assert [task["id"] for task in client.get("/tasks/").json()] == [shown_id]
    assert client.post(f"/tasks/{hidden_id}/status", json={"status": "in_progress"}).status_code == 403
    assert client.patch(f"/tasks/{shown_id}", json={"property_id": long_term.id}).status_code == 422
    response = client.post("/tasks/", json=_payload(long_term, partner))
    assert response.status_code == 422
    assert response.json()["errors"] == {"property_id": "Property not found."}
