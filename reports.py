from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel

from calendar_view import appointments_on
from schemas import AppointmentRead, CustomerRead, InvoiceRead, MedicalRecordRead


class Dashboard(BaseModel):
    todays_appointment_count: int
    total_customers: int
    active_pets: int
    pending_invoices: int
    todays_appointments: List[AppointmentRead]
    upcoming_appointments: List[AppointmentRead]


class InvoiceSummary(BaseModel):
    count: int
    total_amount: float
    outstanding_amount: float


def dashboard(store, now: datetime) -> Dashboard:
    appointments = store.appointments.list()
    todays = appointments_on(appointments, now.date())
    # Same window the front desk uses: from this time tomorrow up to a week out
    start, end = now + timedelta(days=1), now + timedelta(days=7)
    upcoming = sorted(
        (a for a in appointments if start <= a.appointment_date <= end),
        key=lambda a: a.appointment_date,
    )
    return Dashboard(
        todays_appointment_count=len(todays),
        total_customers=store.customers.count(),
        active_pets=store.pets.count(),
        pending_invoices=len(store.invoices.where(status='pending')),
        todays_appointments=todays,
        upcoming_appointments=upcoming,
    )


def _contains(value: Optional[str], term: str) -> bool:
    return value is not None and term in value.lower()


def search_customers(store, term: str = "") -> List[CustomerRead]:
    term = term.strip()
    customers = store.customers.list()
    if not term:
        return customers
    lowered = term.lower()
    return [
        c for c in customers
        if _contains(c.name, lowered) or _contains(c.email, lowered) or term in c.phone
    ]


def filter_medical_records(store, term: str = "", record_type: Optional[str] = None,
                           veterinarian_id: Optional[int] = None) -> List[MedicalRecordRead]:
    customers = {c.customer_id: c.name for c in store.customers.list()}
    pets = {p.pet_id: p.name for p in store.pets.list()}
    term = term.strip().lower()

    def matches(record: MedicalRecordRead) -> bool:
        if record_type and record.type != record_type:
            return False
        if veterinarian_id is not None and record.veterinarian_id != veterinarian_id:
            return False
        if not term:
            return True
        return (_contains(customers.get(record.customer_id), term)
                or _contains(pets.get(record.pet_id), term)
                or _contains(record.procedure, term)
                or _contains(record.notes, term))

    return [r for r in store.medical_records.list() if matches(r)]


def filter_invoices(store, term: str = "", status: Optional[str] = None) -> List[InvoiceRead]:
    customers = {c.customer_id: c.name for c in store.customers.list()}
    term = term.strip().lower()
    return [
        i for i in store.invoices.list()
        if (not status or i.status == status)
        and (not term or _contains(customers.get(i.customer_id), term) or _contains(i.invoice_number, term))
    ]


def invoice_summary(invoices: List[InvoiceRead]) -> InvoiceSummary:
    return InvoiceSummary(
        count=len(invoices),
        total_amount=sum((i.total_amount for i in invoices), 0.0),
        outstanding_amount=sum((i.total_amount for i in invoices if i.status in ('pending', 'overdue')), 0.0),
    )
