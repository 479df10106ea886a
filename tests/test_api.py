import pytest
from hamcrest import assert_that, contains_exactly, has_entries, has_key, has_length

from auth import MemoryStorage, SessionGate
from main import create_app
from fastapi.testclient import TestClient
from settings import SESSION_KEY


def _login(client, username="admin"):
    response = client.post("/auth/login", json={"username": username, "password": username})
    assert response.status_code == 200, response.text
    return response.json()


# -----------------------------
# Session
# -----------------------------
def test_login_me_and_logout(client, storage):
    body = _login(client, "vet")
    assert body["success"] is True
    assert body["user"] == {"user_id": 2, "username": "vet", "role": "veterinarian", "name": "Dr. Michael Chen"}
    assert storage.get(SESSION_KEY) is not None

    assert client.get("/auth/me").json()["username"] == "vet"

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401
    assert storage.get(SESSION_KEY) is None


def test_failed_login_is_unauthorized(client):
    response = client.post("/auth/login", json={"username": "admin", "password": "guess"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "user": None, "error": "Invalid credentials"}


def test_me_without_session(client):
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Not signed in"}


def test_app_restores_saved_session(store):
    storage = MemoryStorage()
    SessionGate(storage).login("reception", "reception")
    with TestClient(create_app(store=store, gate=SessionGate(storage))) as client:
        assert client.get("/auth/me").json()["role"] == "receptionist"


@pytest.mark.parametrize("username, sections", [
    ("admin", ["Dashboard", "Customers", "Appointments", "Medical Records", "Invoices", "Settings"]),
    ("vet", ["Dashboard", "Appointments", "Medical Records"]),
    ("reception", ["Dashboard", "Customers", "Appointments", "Invoices"]),
])
def test_navigation_follows_role(client, username, sections):
    _login(client, username)
    assert [s["name"] for s in client.get("/navigation").json()] == sections


def test_navigation_is_empty_when_signed_out(client):
    assert client.get("/navigation").json() == []


def test_settings_profile(client):
    assert_that(client.get("/settings").json(), has_entries(name="VetCare Animal Hospital", tax_rate=0.08))


def test_dashboard(client):
    body = client.get("/dashboard").json()
    assert body["total_customers"] == 3
    assert body["todays_appointment_count"] == 0
    assert [a["appointment_id"] for a in body["upcoming_appointments"]] == [1, 2]


# -----------------------------
# Customers / pets
# -----------------------------
def test_get_customer_with_pets(client):
    body = client.get("/customers/1").json()
    assert body["name"] == "John Smith"
    assert [p["name"] for p in body["pets"]] == ["Buddy", "Whiskers"]


def test_get_missing_customer_is_404(client):
    response = client.get("/customers/999")
    assert response.status_code == 404
    assert response.json() == {"detail": "Customer with ID 999 not found"}


def test_search_customers(client):
    assert [c["name"] for c in client.get("/customers", params={"q": "wilson"}).json()] == ["Sarah Wilson"]


def test_create_customer_through_the_form(client):
    response = client.post("/customers", json={"name": "Dana Cruz", "email": "dana@email.com", "phone": "5550109999"})
    assert response.status_code == 201
    assert_that(response.json(), has_entries(customer_id=4, phone="(555) 010-9999"))


def test_create_customer_errors(client):
    response = client.post("/customers", json={"name": "D", "email": "john@email.com", "phone": "12"})
    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation failed"
    assert set(body["errors"]) == {"name", "email", "phone"}


def test_update_customer(client):
    response = client.patch("/customers/2", json={"address": "1 New St"})
    assert response.status_code == 200
    assert_that(response.json(), has_entries(name="Sarah Wilson", address="1 New St"))


def test_delete_referenced_customer_conflicts(client):
    response = client.delete("/customers/1")
    assert response.status_code == 409
    assert response.json()["referenced_by"] == ["appointments"]
    assert client.get("/customers/1").status_code == 200


def test_delete_customer_removes_pets(client):
    assert client.delete("/customers/3").status_code == 200
    assert client.get("/pets/4").status_code == 404


def test_pet_history(client):
    body = client.get("/pets/3").json()
    assert body["name"] == "Max"
    assert [a["type"] for a in body["appointments"]] == ["Surgery"]
    assert body["medical_records"] == []


def test_create_pet_for_missing_owner(client):
    response = client.post("/pets", json={"name": "Pip", "species": "Bird", "customer_id": 77})
    assert response.status_code == 404


# -----------------------------
# Reference data
# -----------------------------
def test_veterinarians_and_services(client):
    assert client.get("/veterinarians").json()[2]["name"] == "Dr. Emily Rodriguez"
    assert client.get("/services/3").json()["price"] == 500
    assert client.get("/services/42").status_code == 404


def test_service_line_item(client):
    assert client.get("/services/5/line-item", params={"quantity": 2}).json() == {
        "service_id": 5, "description": "X-Ray", "quantity": 2, "price": 150,
    }
    assert client.get("/services/99/line-item").status_code == 404


def test_vet_schedule_for_a_day(client):
    response = client.get("/veterinarians/2/schedule", params={"date": "2024-01-15"})
    assert [a["appointment_id"] for a in response.json()] == [2]
    assert client.get("/veterinarians/2/schedule", params={"date": "2024-01-16"}).json() == []


# -----------------------------
# Appointments / calendar
# -----------------------------
def test_create_appointment_from_form(client):
    response = client.post("/appointments", json={
        "customer_id": "1", "pet_id": "1", "veterinarian_id": "2",
        "date": "2024-01-16", "time": "09:30", "type": "Check-up",
    })
    assert response.status_code == 201, response.text
    assert_that(response.json(), has_entries(
        appointment_id=3, appointment_date="2024-01-16T09:30:00", duration=30, status="scheduled",
    ))


def test_create_appointment_in_the_past(client):
    response = client.post("/appointments", json={
        "customer_id": "1", "pet_id": "1", "veterinarian_id": "2",
        "date": "2024-01-01", "time": "09:30", "type": "Check-up",
    })
    assert response.status_code == 422
    assert_that(response.json()["errors"], has_key("date"))


def test_update_and_delete_appointment(client):
    response = client.patch("/appointments/1", json={"appointment_date": "2024-01-15T15:00:00Z"})
    assert response.json()["appointment_date"] == "2024-01-15T15:00:00"
    assert client.delete("/appointments/1").status_code == 200
    assert client.get("/appointments/1").status_code == 404


def test_appointments_today_uses_store_clock(client):
    assert client.get("/appointments/today").json() == []


def test_week_calendar(client):
    days = client.get("/calendar", params={"date": "2024-01-15"}).json()
    assert_that(days, has_length(7))
    assert days[0]["day"] == "2024-01-14"
    assert days[6]["day"] == "2024-01-20"
    assert [a["appointment_id"] for a in days[1]["appointments"]] == [1, 2]
    assert all(d["appointments"] == [] for i, d in enumerate(days) if i != 1)


def test_day_calendar(client):
    days = client.get("/calendar", params={"date": "2024-01-15", "mode": "day"}).json()
    assert [d["day"] for d in days] == ["2024-01-15"]


@pytest.mark.parametrize("direction, mode, expected", [
    (1, "week", "2024-01-22"),
    (-1, "week", "2024-01-08"),
    (1, "day", "2024-01-16"),
])
def test_calendar_navigate(client, direction, mode, expected):
    response = client.get("/calendar/navigate", params={"direction": direction, "date": "2024-01-15", "mode": mode})
    assert response.json() == {"date": expected, "mode": mode}


def test_calendar_legend(client):
    assert [(e["name"], e["color"]) for e in client.get("/calendar/legend").json()] == [
        ("Dr. Sarah Johnson", "green"),
        ("Dr. Michael Chen", "purple"),
        ("Dr. Emily Rodriguez", "yellow"),
    ]


def test_calendar_navigate_rejects_other_steps(client):
    response = client.get("/calendar/navigate", params={"direction": 2, "date": "2024-01-15"})
    assert response.status_code == 422
    assert_that(response.json()["errors"], has_key("direction"))


# -----------------------------
# Medical records
# -----------------------------
def test_medical_record_flow(client):
    response = client.post("/medical-records", json={
        "customer_id": "2", "pet_id": "3", "veterinarian_id": "2",
        "type": "Surgery", "procedure": "Spay", "notes": "Routine",
        "medications": ["Meloxicam", ""], "cost": "500",
    })
    assert response.status_code == 201, response.text
    record = response.json()
    assert record["record_date"] == "2024-01-10T09:00:00"
    assert record["medications"] == ["Meloxicam"]

    listed = client.get("/medical-records", params={"type": "Surgery"}).json()
    assert [r["record_id"] for r in listed] == [record["record_id"]]

    patched = client.patch(f"/medical-records/{record['record_id']}", json={"notes": "Recovered"}).json()
    assert patched["notes"] == "Recovered"


# -----------------------------
# Invoices
# -----------------------------
def test_invoice_flow(client):
    response = client.post("/invoices", json={
        "customer_id": "1", "pet_id": "1", "status": "paid",
        "items": [
            {"service_id": "1", "description": "Consultation", "quantity": "2", "price": "75"},
            {"service_id": "2", "description": "Vaccination", "quantity": "1", "price": "45"},
        ],
    })
    assert response.status_code == 201, response.text
    invoice = response.json()
    assert invoice["status"] == "pending"
    assert invoice["subtotal"] == 195
    assert invoice["total_amount"] == pytest.approx(210.6)
    assert invoice["invoice_number"].startswith("INV-")

    paid = client.patch(f"/invoices/{invoice['invoice_id']}", json={"status": "paid"}).json()
    assert paid["status"] == "paid"
    assert paid["total_amount"] == invoice["total_amount"]

    assert [i["invoice_id"] for i in client.get("/customers/1/invoices").json()] == [invoice["invoice_id"]]
    summary = client.get("/invoices/summary").json()
    assert summary["count"] == 1
    assert summary["outstanding_amount"] == 0


def test_invoice_form_errors(client):
    response = client.post("/invoices", json={"customer_id": "", "items": []})
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"customer_id", "items"}


def test_invoice_quote(client):
    response = client.post("/invoices/quote", json=[
        {"description": "Surgery", "quantity": 1, "price": 500},
        {"description": "X-Ray", "quantity": 2, "price": 150},
    ])
    body = response.json()
    assert body["subtotal"] == 800
    assert body["tax_amount"] == pytest.approx(64)
    assert_that(body["display"], has_entries(subtotal="$800.00", tax_amount="$64.00", total_amount="$864.00"))


def test_unknown_invoice_status_is_rejected(client):
    response = client.get("/invoices", params={"status": "pending"})
    assert response.json() == []
    invoice = client.post("/invoices", json={
        "customer_id": "1", "items": [{"description": "Consultation", "quantity": "1", "price": "75"}],
    }).json()
    assert client.patch(f"/invoices/{invoice['invoice_id']}", json={"status": "lost"}).status_code == 422
    assert_that(client.get("/invoices").json(), contains_exactly(has_entries(status="pending")))


# -----------------------------
# Edits go through the form rules
# -----------------------------
@pytest.mark.parametrize("changes, field", [
    ({"email": "not-an-email"}, "email"),
    ({"email": "JOHN@email.com"}, "email"),
    ({"phone": "12"}, "phone"),
    ({"name": ""}, "name"),
])
def test_customer_edit_is_validated(client, changes, field):
    response = client.patch("/customers/2", json=changes)
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {field}
    assert client.get("/customers/2").json()["email"] == "sarah@email.com"


def test_customer_may_resave_their_own_email(client):
    response = client.patch("/customers/1", json={"email": "john@email.com", "phone": "5550101999"})
    assert response.status_code == 200
    assert_that(response.json(), has_entries(email="john@email.com", phone="(555) 010-1999"))


def test_appointment_edit_is_validated(client):
    response = client.patch("/appointments/1", json={"pet_id": 3})
    assert response.status_code == 422
    assert response.json()["errors"] == {"pet_id": "Pet does not belong to the selected customer"}

    response = client.patch("/appointments/1", json={"date": "2024-01-16", "time": "08:15"})
    assert response.json()["appointment_date"] == "2024-01-16T08:15:00"


def test_invoice_for_another_customers_pet_is_rejected(client):
    response = client.post("/invoices", json={
        "customer_id": "1", "pet_id": "4",
        "items": [{"description": "Consultation", "quantity": "1", "price": "75"}],
    })
    assert response.status_code == 422
    assert_that(response.json()["errors"], has_key("pet_id"))


# -----------------------------
# Store clock
# -----------------------------
def test_calendar_defaults_to_the_store_date(client):
    days = client.get("/calendar").json()
    assert [days[0]["day"], days[6]["day"]] == ["2024-01-07", "2024-01-13"]
    assert client.get("/calendar/navigate", params={"direction": 1}).json() == {"date": "2024-01-17", "mode": "week"}


def test_new_customer_is_registered_at_store_time(client):
    response = client.post("/customers", json={"name": "Dana Cruz", "email": "dana@email.com", "phone": "5550109999"})
    assert response.json()["registration_date"] == "2024-01-10T09:00:00"


# -----------------------------
# Application factory
# -----------------------------
def test_importing_main_builds_nothing():
    import main
    assert not hasattr(main, "app")


def test_create_app_builds_and_seeds_its_own_store(storage):
    app = create_app(gate=SessionGate(storage))
    try:
        assert app.state.store.seeded
        assert app.state.store.customers.count() == 3
    finally:
        app.state.store.close()
