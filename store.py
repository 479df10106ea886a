"""In-memory entity store for the clinic.

The store owns a private in-memory SQLite database. Every read returns detached
pydantic snapshots and every write runs in its own transaction, so the store is
the only thing that ever changes a record.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

import models
import seed as seed_data
from database import Base, make_engine, make_session_factory
from errors import NotFound, ReferencedRecord, StoreStateError, ValidationError
from invoice_calculator import compute_totals
from schemas import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentUpdate,
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    InvoiceCreate,
    InvoiceRead,
    InvoiceUpdate,
    MedicalRecordCreate,
    MedicalRecordRead,
    MedicalRecordUpdate,
    PetCreate,
    PetRead,
    PetUpdate,
    ServiceRead,
    VeterinarianRead,
)
from settings import DATABASE_URL, TAX_RATE

logger = logging.getLogger(__name__)


def generate_invoice_number(moment: datetime) -> str:
    return f"INV-{int(moment.timestamp() * 1000)}"


class _Collection:
    """Read access shared by every entity collection."""

    model = None
    read_schema = None
    label = "Item"

    def __init__(self, store: "EntityStore"):
        self._store = store

    @property
    def _pk(self):
        return self.model.__mapper__.primary_key[0]

    def _read(self, obj) -> BaseModel:
        return self.read_schema.model_validate(obj)

    def _get_or_404(self, db, item_id):
        obj = db.get(self.model, item_id)
        if obj is None:
            raise NotFound(self.label, item_id)
        return obj

    def list(self) -> List[BaseModel]:
        with self._store.session() as db:
            return [self._read(o) for o in db.query(self.model).order_by(self._pk).all()]

    def get(self, item_id: int) -> BaseModel:
        with self._store.session() as db:
            return self._read(self._get_or_404(db, item_id))

    def where(self, **criteria) -> List[BaseModel]:
        with self._store.session() as db:
            q = db.query(self.model).filter_by(**criteria).order_by(self._pk)
            return [self._read(o) for o in q.all()]

    def count(self) -> int:
        with self._store.session() as db:
            return db.query(self.model).count()


class _WritableCollection(_Collection):
    create_schema = None
    update_schema = None
    # Column set from the store clock on creation, if any
    stamped = None

    def _build(self, db, payload: BaseModel):
        obj = self.model(**payload.model_dump())
        if self.stamped:
            setattr(obj, self.stamped, self._store.now())
        return obj

    def _apply(self, db, obj, fields: Dict) -> None:
        columns = self.model.__table__.columns
        for key, value in fields.items():
            if value is None and not columns[key].nullable:
                raise ValidationError({key: f"{key} cannot be empty"})
            setattr(obj, key, value)

    def add(self, payload) -> BaseModel:
        payload = self.create_schema.model_validate(payload)
        with self._store.transaction() as db:
            obj = self._build(db, payload)
            db.add(obj)
            db.flush()
            db.refresh(obj)
            created = self._read(obj)
        logger.info("Added %s %s", self.label, getattr(created, self._pk.key))
        return created

    def update(self, item_id: int, changes) -> BaseModel:
        """Merge the fields the caller actually set into the record."""
        changes = self.update_schema.model_validate(changes)
        fields = changes.model_dump(exclude_unset=True)
        with self._store.transaction() as db:
            obj = self._get_or_404(db, item_id)
            self._apply(db, obj, fields)
            db.flush()
            updated = self._read(obj)
        logger.info("Updated %s %s: %s", self.label, item_id, ", ".join(sorted(fields)) or "no fields")
        return updated


class _DeletableCollection(_WritableCollection):

    def _check_references(self, db, obj) -> None:
        pass

    def delete(self, item_id: int) -> None:
        with self._store.transaction() as db:
            obj = self._get_or_404(db, item_id)
            self._check_references(db, obj)
            db.delete(obj)
        logger.info("Deleted %s %s", self.label, item_id)


def _referencing(db, column: str, ids: List[int]) -> List[str]:
    """Names of the dependent collections holding any of ``ids`` in ``column``."""
    if not ids:
        return []
    found = []
    for model, name in ((models.Appointments, "appointments"),
                        (models.MedicalRecords, "medical records"),
                        (models.Invoices, "invoices")):
        if db.query(model).filter(getattr(model, column).in_(ids)).first() is not None:
            found.append(name)
    return found


class CustomerCollection(_DeletableCollection):
    model = models.Customers
    read_schema = CustomerRead
    create_schema = CustomerCreate
    update_schema = CustomerUpdate
    label = "Customer"
    stamped = "registration_date"

    def _check_references(self, db, obj) -> None:
        pet_ids = [p.pet_id for p in obj.pets]
        referenced_by = _referencing(db, "customer_id", [obj.customer_id])
        for name in _referencing(db, "pet_id", pet_ids):
            if name not in referenced_by:
                referenced_by.append(name)
        if referenced_by:
            logger.warning("Refused to delete Customer %s: referenced by %s", obj.customer_id, referenced_by)
            raise ReferencedRecord(self.label, obj.customer_id, referenced_by)
        # Pets go with their owner through the relationship cascade on Customers.pets


class PetCollection(_DeletableCollection):
    model = models.Pets
    read_schema = PetRead
    create_schema = PetCreate
    update_schema = PetUpdate
    label = "Pet"
    stamped = "registration_date"

    def _require_owner(self, db, customer_id: int) -> None:
        if db.get(models.Customers, customer_id) is None:
            raise NotFound("Customer", customer_id)

    def _build(self, db, payload: PetCreate):
        self._require_owner(db, payload.customer_id)
        return super()._build(db, payload)

    def _apply(self, db, obj, fields: Dict) -> None:
        if fields.get("customer_id") is not None:
            self._require_owner(db, fields["customer_id"])
        super()._apply(db, obj, fields)

    def _check_references(self, db, obj) -> None:
        referenced_by = _referencing(db, "pet_id", [obj.pet_id])
        if referenced_by:
            logger.warning("Refused to delete Pet %s: referenced by %s", obj.pet_id, referenced_by)
            raise ReferencedRecord(self.label, obj.pet_id, referenced_by)

    def for_customer(self, customer_id: int) -> List[PetRead]:
        return self.where(customer_id=customer_id)


class VeterinarianCollection(_Collection):
    model = models.Veterinarians
    read_schema = VeterinarianRead
    label = "Veterinarian"


class ServiceCollection(_Collection):
    model = models.Services
    read_schema = ServiceRead
    label = "Service"


class AppointmentCollection(_DeletableCollection):
    model = models.Appointments
    read_schema = AppointmentRead
    create_schema = AppointmentCreate
    update_schema = AppointmentUpdate
    label = "Appointment"

    def for_pet(self, pet_id: int) -> List[AppointmentRead]:
        return self.where(pet_id=pet_id)

    def for_customer(self, customer_id: int) -> List[AppointmentRead]:
        return self.where(customer_id=customer_id)

    def for_veterinarian(self, veterinarian_id: int) -> List[AppointmentRead]:
        return self.where(veterinarian_id=veterinarian_id)


class MedicalRecordCollection(_WritableCollection):
    model = models.MedicalRecords
    read_schema = MedicalRecordRead
    create_schema = MedicalRecordCreate
    update_schema = MedicalRecordUpdate
    label = "Medical record"

    def _build(self, db, payload: MedicalRecordCreate):
        data = payload.model_dump(exclude={"record_date"})
        return self.model(**data, record_date=self._store.now())

    def for_pet(self, pet_id: int) -> List[MedicalRecordRead]:
        return self.where(pet_id=pet_id)

    def for_customer(self, customer_id: int) -> List[MedicalRecordRead]:
        return self.where(customer_id=customer_id)


class InvoiceCollection(_WritableCollection):
    model = models.Invoices
    read_schema = InvoiceRead
    create_schema = InvoiceCreate
    update_schema = InvoiceUpdate
    label = "Invoice"

    def _set_items(self, invoice, items) -> None:
        invoice.items = [
            models.InvoiceItems(position=i, **item.model_dump())
            for i, item in enumerate(items)
        ]
        totals = compute_totals(items, self._store.tax_rate)
        invoice.subtotal = totals.subtotal
        invoice.tax_amount = totals.tax_amount
        invoice.total_amount = totals.total_amount

    def _build(self, db, payload: InvoiceCreate):
        now = self._store.now()
        if payload.status not in (None, 'pending'):
            logger.debug("Ignoring status '%s' on new invoice", payload.status)
        invoice = self.model(
            customer_id=payload.customer_id,
            pet_id=payload.pet_id,
            invoice_number=payload.invoice_number or generate_invoice_number(now),
            status='pending',
            notes=payload.notes,
            issue_date=now,
        )
        self._set_items(invoice, payload.items)
        return invoice

    def _apply(self, db, obj, fields: Dict) -> None:
        items = fields.pop("items", None)
        super()._apply(db, obj, fields)
        if items is not None:
            # fields holds plain dicts after model_dump; rebuild the typed items
            self._set_items(obj, self.update_schema.model_validate({"items": items}).items)

    def for_customer(self, customer_id: int) -> List[InvoiceRead]:
        return self.where(customer_id=customer_id)


class EntityStore:
    """All clinic collections for one session.

    Build one per application (or per test) and pass it to whoever needs it;
    nothing in this module keeps state at import time.
    """

    def __init__(self, url: str = DATABASE_URL, tax_rate: float = TAX_RATE,
                 clock: Optional[Callable[[], datetime]] = None):
        self.engine = make_engine(url)
        Base.metadata.create_all(bind=self.engine)
        self._session_factory = make_session_factory(self.engine)
        self.tax_rate = tax_rate
        self._clock = clock or datetime.now
        self._seeded = False
        self._written = False
        # Every session shares one SQLite connection, so sessions run one at a time
        self._lock = threading.RLock()

        self.customers = CustomerCollection(self)
        self.pets = PetCollection(self)
        self.veterinarians = VeterinarianCollection(self)
        self.services = ServiceCollection(self)
        self.appointments = AppointmentCollection(self)
        self.medical_records = MedicalRecordCollection(self)
        self.invoices = InvoiceCollection(self)

    def now(self) -> datetime:
        return self._clock()

    @contextmanager
    def session(self):
        with self._lock:
            db = self._session_factory()
            try:
                yield db
            finally:
                db.close()

    @contextmanager
    def transaction(self):
        with self._lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
                self._written = True
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    @property
    def seeded(self) -> bool:
        return self._seeded

    def seed(self) -> Dict[str, int]:
        """Load the starting dataset. Allowed once, before any other write."""
        with self._lock:
            if self._seeded:
                raise StoreStateError("store has already been seeded")
            if self._written:
                raise StoreStateError("seed must run before any other write")
            with self.transaction() as db:
                counts = seed_data.populate(db, self.now())
            self._seeded = True
        logger.info("Seeded: %s", ", ".join(f"{v} {k}" for k, v in counts.items()))
        return counts

    def close(self) -> None:
        self.engine.dispose()
