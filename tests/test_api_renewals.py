from decimal import Decimal

from leasedesk.models.models import Permission

RENEWAL_GRANTS = [Permission(resource="renewals", actions=["view", "edit"])]


def test_list_renewals_sorted_and_filtered(client_as, create_user, create_owner, create_property, create_tenant):
    silva = create_owner("Ana Silva")
    costa = create_owner("Rui Costa")
    create_tenant(create_property(silva, name="Harbor View 12"), lease_end="2025-01-11")
    create_tenant(create_property(costa, name="Oak Street 4"), lease_end="2025-03-02", name="Paulo Dias")
    create_tenant(create_property(costa, profile_type="short_term"), lease_end="2025-01-05", name="Guest")
    client = client_as(create_user(permissions=RENEWAL_GRANTS))

    response = client.get("/renewals/")
    assert response.status_code == 200
    records = response.json()
    assert [(record["property_name"], record["bucket"], record["days_left"]) for record in records] == [
        ("Harbor View 12", "critical", 10),
        ("Oak Street 4", "upcoming", 60),
    ]

    response = client.get("/renewals/", params={"owner_id": costa.id})
    assert [record["tenant_name"] for record in response.json()] == ["Paulo Dias"]

    response = client.get("/renewals/", params={"start": "2025-02-01", "end": "2025-03-31"})
    assert [record["tenant_name"] for record in response.json()] == ["Paulo Dias"]

    response = client.get("/renewals/summary")
    assert response.json() == {
        "counts": {"renewed": 0, "critical": 1, "upcoming": 1, "year": 0, "safe": 0},
        "total": 2,
    }


def test_negotiation_update_and_close(state, client_as, create_user, create_property, create_tenant):
    tenant = create_tenant(create_property())
    client = client_as(create_user(permissions=RENEWAL_GRANTS))

    response = client.patch(
        f"/renewals/{tenant.id}/negotiation",
        json={"status": "owner_contacted", "suggested_price": "1050", "note": "Owner open to 5%"},
    )
    assert response.status_code == 200
    assert response.json()["negotiation_status"] == "owner_contacted"

    response = client.post(f"/renewals/{tenant.id}/close", json={"new_value": "1050", "new_start": "2025-01-12"})
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"new_end", "contract_document"}
    assert state.tenants.get(tenant.id).negotiation_status == "owner_contacted"

    response = client.post(
        f"/renewals/{tenant.id}/close",
        json={
            "new_value": "1050",
            "new_start": "2025-01-12",
            "new_end": "2026-01-11",
            "contract": {"name": "renewal-2025.pdf", "url": "https://files.example.com/renewal-2025.pdf"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["negotiation_status"] == "closed"
    assert body["lease_end"] == "2026-01-11"
    assert Decimal(body["rent_value"]) == Decimal("1050")
    assert [log["action"] for log in body["negotiation_logs"]] == ["Update", "Closed"]
    assert body["documents"][0]["name"] == "renewal-2025.pdf"

    records = client.get("/renewals/", params={"bucket": "renewed"}).json()
    assert [record["tenant_id"] for record in records] == [tenant.id]


def test_closed_status_must_go_through_close_endpoint(client_as, create_user, create_property, create_tenant):
    tenant = create_tenant(create_property())
    client = client_as(create_user(permissions=RENEWAL_GRANTS))

    response = client.patch(f"/renewals/{tenant.id}/negotiation", json={"status": "closed"})

    assert response.status_code == 422
    assert "status" in response.json()["errors"]


def test_bulk_status_and_missing_tenants(client_as, create_user, create_property, create_tenant):
    first = create_tenant(create_property())
    client = client_as(create_user(permissions=RENEWAL_GRANTS))

    response = client.post("/renewals/bulk-status", json={"tenant_ids": [first.id, "tenant-missing"], "status": "vacating"})

    assert response.status_code == 200
    assert response.json() == {"updated": [first.id], "missing": ["tenant-missing"], "skipped": {}}
    assert client.patch("/renewals/tenant-missing/negotiation", json={}).status_code == 404
    assert client.post("/renewals/tenant-missing/close", json={}).status_code == 404


def test_view_only_users_cannot_edit_negotiations(client_as, create_user, create_property, create_tenant):
    tenant = create_tenant(create_property())
    client = client_as(create_user(permissions=[Permission(resource="renewals", actions=["view"])]))

    assert client.get("/renewals/").status_code == 200
    assert client.patch(f"/renewals/{tenant.id}/negotiation", json={"status": "vacating"}).status_code == 403


def test_profile_type_restriction_hides_long_term_renewals(state, client_as, create_user, create_property, create_tenant):
    tenant = create_tenant(create_property())
    restricted = create_user(role="internal_user", permissions=RENEWAL_GRANTS, allowed_profile_types=["short_term"])
    client = client_as(restricted)

    assert client.get("/renewals/").json() == []
    assert client.get("/renewals/summary").json()["total"] == 0
    assert client.patch(f"/renewals/{tenant.id}/negotiation", json={"status": "vacating"}).status_code == 404
    assert state.tenants.get(tenant.id).negotiation_status is None

    unrestricted = create_user(role="internal_user", permissions=RENEWAL_GRANTS, allowed_profile_types=["long_term"])
    assert [record["tenant_id"] for record in client_as(unrestricted).get("/renewals/").json()] == [tenant.id]
