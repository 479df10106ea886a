from fastapi import APIRouter, Body, FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional

import forms
import reports
from auth import JsonFileStorage, LoginResult, SessionGate, UserIdentity
from calendar_view import DayBucket, appointments_on, navigate, project, today, vet_color
from errors import AuthenticationError, NotFound, ReferencedRecord, StoreStateError, ValidationError
from invoice_calculator import compute_totals, format_money, prefill_item
from navigation import Section, sections_for
from settings import SESSION_FILE, ClinicProfile, configure_logging
from store import EntityStore

from schemas import (
    AppointmentRead,
    CustomerRead,
    CustomerWithPets,
    InvoiceItem,
    InvoiceRead,
    InvoiceUpdate,
    MedicalRecordRead,
    MedicalRecordUpdate,
    PetCreate,
    PetRead,
    PetUpdate,
    PetWithHistory,
    ServiceRead,
    VeterinarianRead,
)


router = APIRouter()


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_gate(request: Request) -> SessionGate:
    return request.app.state.gate


store_dependency = Annotated[EntityStore, Depends(get_store)]
gate_dependency = Annotated[SessionGate, Depends(get_gate)]

RawForm = Annotated[Dict[str, Any], Body(...)]


class LoginRequest(BaseModel):
    username: str
    password: str


class LegendEntry(BaseModel):
    veterinarian_id: int
    name: str
    color: str


class Quote(BaseModel):
    subtotal: float
    tax_amount: float
    total_amount: float
    display: Dict[str, str]


# ---------------- Session / navigation ----------------

@router.post("/auth/login", response_model=LoginResult)
def login(payload: LoginRequest, gate: gate_dependency):
    result = gate.login(payload.username, payload.password)
    if not result.success:
        return JSONResponse(status_code=401, content=result.model_dump())
    return result


@router.post("/auth/logout")
def logout(gate: gate_dependency):
    gate.logout()
    return {"detail": "Signed out"}


@router.get("/auth/me", response_model=UserIdentity)
def current_user(gate: gate_dependency):
    if gate.user is None:
        raise AuthenticationError("Not signed in")
    return gate.user


@router.get("/navigation", response_model=List[Section])
def navigation(gate: gate_dependency):
    return sections_for(gate.user.role if gate.user else None)


@router.get("/settings", response_model=ClinicProfile)
def clinic_settings(request: Request):
    return request.app.state.profile


@router.get("/dashboard", response_model=reports.Dashboard)
def dashboard(store: store_dependency):
    return reports.dashboard(store, store.now())


# ---------------- Customers ----------------

@router.get("/customers", response_model=List[CustomerRead])
def list_customers(store: store_dependency, q: str = ""):
    return reports.search_customers(store, q)


@router.get("/customers/{customer_id}", response_model=CustomerWithPets)
def get_customer(customer_id: int, store: store_dependency):
    customer = store.customers.get(customer_id)
    return CustomerWithPets(**customer.model_dump(), pets=store.pets.for_customer(customer_id))


@router.get("/customers/{customer_id}/pets", response_model=List[PetRead])
def get_customer_pets(customer_id: int, store: store_dependency):
    store.customers.get(customer_id)
    return store.pets.for_customer(customer_id)


@router.get("/customers/{customer_id}/invoices", response_model=List[InvoiceRead])
def get_customer_invoices(customer_id: int, store: store_dependency):
    store.customers.get(customer_id)
    return store.invoices.for_customer(customer_id)


@router.post("/customers", response_model=CustomerRead, status_code=201)
def create_customer(payload: RawForm, store: store_dependency):
    return store.customers.add(forms.validate_customer(payload, store.customers.list()))


@router.patch("/customers/{customer_id}", response_model=CustomerRead)
def update_customer(customer_id: int, payload: RawForm, store: store_dependency):
    current = store.customers.get(customer_id)
    changes = forms.validate_customer_update(payload, current, store.customers.list())
    return store.customers.update(customer_id, changes)


@router.delete("/customers/{customer_id}")
def delete_customer(customer_id: int, store: store_dependency):
    store.customers.delete(customer_id)
    return {"detail": "Customer deleted"}


# ---------------- Pets ----------------

@router.get("/pets", response_model=List[PetRead])
def list_pets(store: store_dependency):
    return store.pets.list()


@router.get("/pets/{pet_id}", response_model=PetWithHistory)
def get_pet(pet_id: int, store: store_dependency):
    pet = store.pets.get(pet_id)
    return PetWithHistory(
        **pet.model_dump(),
        appointments=store.appointments.for_pet(pet_id),
        medical_records=store.medical_records.for_pet(pet_id),
    )


@router.post("/pets", response_model=PetRead, status_code=201)
def create_pet(payload: PetCreate, store: store_dependency):
    return store.pets.add(payload)


@router.patch("/pets/{pet_id}", response_model=PetRead)
def update_pet(pet_id: int, payload: PetUpdate, store: store_dependency):
    return store.pets.update(pet_id, payload)


@router.delete("/pets/{pet_id}")
def delete_pet(pet_id: int, store: store_dependency):
    store.pets.delete(pet_id)
    return {"detail": "Pet deleted"}


# ---------------- Veterinarians / services ----------------

@router.get("/veterinarians", response_model=List[VeterinarianRead])
def list_veterinarians(store: store_dependency):
    return store.veterinarians.list()


@router.get("/veterinarians/{vet_id}", response_model=VeterinarianRead)
def get_veterinarian(vet_id: int, store: store_dependency):
    return store.veterinarians.get(vet_id)


@router.get("/veterinarians/{vet_id}/schedule", response_model=List[AppointmentRead])
def get_vet_schedule(vet_id: int, store: store_dependency, day: Optional[date] = Query(None, alias="date")):
    store.veterinarians.get(vet_id)
    appointments = store.appointments.for_veterinarian(vet_id)
    if day is not None:
        return appointments_on(appointments, day)
    return sorted(appointments, key=lambda a: a.appointment_date)


@router.get("/services", response_model=List[ServiceRead])
def list_services(store: store_dependency):
    return store.services.list()


@router.get("/services/{service_id}", response_model=ServiceRead)
def get_service(service_id: int, store: store_dependency):
    return store.services.get(service_id)


@router.get("/services/{service_id}/line-item", response_model=InvoiceItem)
def get_service_line_item(service_id: int, store: store_dependency, quantity: float = 1):
    return prefill_item(store.services.get(service_id), quantity)


# ---------------- Appointments / calendar ----------------

@router.get("/appointments", response_model=List[AppointmentRead])
def list_appointments(store: store_dependency):
    return store.appointments.list()


@router.get("/appointments/today", response_model=List[AppointmentRead])
def get_appointments_today(store: store_dependency):
    return appointments_on(store.appointments.list(), store.now().date())


@router.get("/appointments/{appointment_id}", response_model=AppointmentRead)
def get_appointment(appointment_id: int, store: store_dependency):
    return store.appointments.get(appointment_id)


@router.post("/appointments", response_model=AppointmentRead, status_code=201)
def create_appointment(payload: RawForm, store: store_dependency):
    appointment = forms.validate_appointment(payload, store.now(), store.pets.list())
    return store.appointments.add(appointment)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentRead)
def update_appointment(appointment_id: int, payload: RawForm, store: store_dependency):
    current = store.appointments.get(appointment_id)
    changes = forms.validate_appointment_update(payload, current, store.now(), store.pets.list())
    return store.appointments.update(appointment_id, changes)


@router.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: int, store: store_dependency):
    store.appointments.delete(appointment_id)
    return {"detail": "Appointment deleted"}


@router.get("/calendar", response_model=List[DayBucket])
def calendar(store: store_dependency, day: Optional[date] = Query(None, alias="date"),
             mode: Literal['week', 'day'] = 'week'):
    return project(store.appointments.list(), day or today(store.now()), mode)


@router.get("/calendar/legend", response_model=List[LegendEntry])
def calendar_legend(store: store_dependency):
    return [
        LegendEntry(veterinarian_id=v.veterinarian_id, name=v.name, color=vet_color(v.veterinarian_id))
        for v in store.veterinarians.list()
    ]


@router.get("/calendar/navigate")
def calendar_navigate(store: store_dependency, direction: int, day: Optional[date] = Query(None, alias="date"),
                      mode: Literal['week', 'day'] = 'week'):
    if direction not in (-1, 1):
        raise ValidationError({"direction": "direction must be -1 or 1"})
    return {"date": navigate(day or today(store.now()), direction, mode), "mode": mode}


# ---------------- Medical records ----------------

@router.get("/medical-records", response_model=List[MedicalRecordRead])
def list_medical_records(store: store_dependency, q: str = "", type: Optional[str] = None,
                         veterinarian_id: Optional[int] = None):
    return reports.filter_medical_records(store, q, type, veterinarian_id)


@router.get("/medical-records/{record_id}", response_model=MedicalRecordRead)
def get_medical_record(record_id: int, store: store_dependency):
    return store.medical_records.get(record_id)


@router.post("/medical-records", response_model=MedicalRecordRead, status_code=201)
def create_medical_record(payload: RawForm, store: store_dependency):
    return store.medical_records.add(forms.validate_medical_record(payload))


@router.patch("/medical-records/{record_id}", response_model=MedicalRecordRead)
def update_medical_record(record_id: int, payload: MedicalRecordUpdate, store: store_dependency):
    return store.medical_records.update(record_id, payload)


# ---------------- Invoices ----------------

@router.get("/invoices", response_model=List[InvoiceRead])
def list_invoices(store: store_dependency, q: str = "", status: Optional[str] = None):
    return reports.filter_invoices(store, q, status)


@router.get("/invoices/summary", response_model=reports.InvoiceSummary)
def invoices_summary(store: store_dependency, q: str = "", status: Optional[str] = None):
    return reports.invoice_summary(reports.filter_invoices(store, q, status))


@router.post("/invoices/quote", response_model=Quote)
def quote_invoice(items: List[InvoiceItem], store: store_dependency):
    totals = compute_totals(items, store.tax_rate)
    return Quote(
        **totals.model_dump(),
        display={k: format_money(v) for k, v in totals.model_dump().items()},
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: int, store: store_dependency):
    return store.invoices.get(invoice_id)


@router.post("/invoices", response_model=InvoiceRead, status_code=201)
def create_invoice(payload: RawForm, store: store_dependency):
    return store.invoices.add(forms.validate_invoice(payload, store.pets.list()))


@router.patch("/invoices/{invoice_id}", response_model=InvoiceRead)
def update_invoice(invoice_id: int, payload: InvoiceUpdate, store: store_dependency):
    return store.invoices.update(invoice_id, payload)


# ---------------- Application root ----------------

def create_app(store: Optional[EntityStore] = None, gate: Optional[SessionGate] = None,
               seed: bool = True) -> FastAPI:
    """Build the application and the state it owns.

    The store is seeded here, once, unless the caller hands in its own store.
    Nothing is built at import time; serve it with
    ``uvicorn main:create_app --factory``.
    """
    configure_logging()
    app = FastAPI(title="VetCare Clinic API", version="1.0.0")

    if store is None:
        store = EntityStore()
        if seed:
            store.seed()
    if gate is None:
        gate = SessionGate(JsonFileStorage(SESSION_FILE) if SESSION_FILE else None)
    gate.restore()

    app.state.store = store
    app.state.gate = gate
    app.state.profile = ClinicProfile(tax_rate=store.tax_rate)
    app.include_router(router)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ReferencedRecord)
    async def referenced(request: Request, exc: ReferencedRecord):
        return JSONResponse(status_code=409, content={"detail": str(exc), "referenced_by": exc.referenced_by})

    @app.exception_handler(ValidationError)
    async def invalid(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": "Validation failed", "errors": exc.errors})

    @app.exception_handler(AuthenticationError)
    async def unauthenticated(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content={"detail": exc.message})

    @app.exception_handler(StoreStateError)
    async def bad_state(request: Request, exc: StoreStateError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    return app