"""Parse-or-reject boundary between raw form input and the typed schemas.

Form values arrive as loosely typed text (ids and numbers included). Each
``validate_*`` function either returns a schema ready for the store or raises
``errors.ValidationError`` carrying one message per offending field. Nothing here
writes to the store.
"""
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from errors import ValidationError
from schemas import (
    APPOINTMENT_TYPES,
    AppointmentCreate,
    AppointmentRead,
    AppointmentUpdate,
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    InvoiceCreate,
    InvoiceItem,
    MedicalRecordCreate,
    PetRead,
    RECORD_TYPES,
    normalize_datetime,
)

_EMAIL = TypeAdapter(EmailStr)


def _text(data: Mapping, key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value).strip()


def _int(data: Mapping, key: str) -> Optional[int]:
    raw = _text(data, key)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _number(value) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _build(schema, **fields):
    try:
        return schema(**fields)
    except SchemaValidationError as e:
        raise ValidationError({
            ".".join(str(p) for p in err["loc"]) or "form": err["msg"] for err in e.errors()
        }) from e


def _is_email(value: str) -> bool:
    try:
        _EMAIL.validate_python(value)
    except SchemaValidationError:
        return False
    return True


def digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def format_phone(value: str) -> str:
    """Format a 10 digit number as (555) 123-4567; anything else is returned as typed."""
    d = digits(value)
    if len(d) != 10:
        return value
    return f"({d[:3]}) {d[3:6]}-{d[6:]}"


def validate_customer(data: Mapping[str, Any], customers: Iterable[CustomerRead] = (),
                      editing_id: Optional[int] = None) -> CustomerCreate:
    errors: Dict[str, str] = {}
    name = _text(data, "name")
    email = _text(data, "email")
    phone = _text(data, "phone")

    if not name:
        errors["name"] = "Full name is required"
    elif len(name) < 2:
        errors["name"] = "Name must be at least 2 characters long"

    if not email:
        errors["email"] = "Email address is required"
    elif not _is_email(email):
        errors["email"] = "Please enter a valid email address"
    elif any(c.email.lower() == email.lower() and c.customer_id != editing_id for c in customers):
        errors["email"] = "A customer with this email already exists"

    if not phone:
        errors["phone"] = "Phone number is required"
    elif len(digits(phone)) < 10:
        errors["phone"] = "Please enter a valid phone number"

    if errors:
        raise ValidationError(errors)
    return _build(CustomerCreate, name=name, email=email, phone=format_phone(phone),
                  address=_text(data, "address") or None)


def validate_customer_update(changes: Mapping[str, Any], current: CustomerRead,
                             customers: Iterable[CustomerRead] = ()) -> CustomerUpdate:
    """Check an edit to ``current`` against the same rules as a new customer.

    Only the fields being changed are judged, so a stored value that predates a
    rule (the seeded short phone numbers) does not block an unrelated edit.
    """
    changes = {k: v for k, v in changes.items() if k in CustomerUpdate.model_fields}
    merged = {**current.model_dump(), **changes}
    try:
        checked = validate_customer(merged, customers, editing_id=current.customer_id)
    except ValidationError as e:
        errors = {k: v for k, v in e.errors.items() if k in changes}
        if errors:
            raise ValidationError(errors) from e
        checked = None
    if checked is not None:
        return _build(CustomerUpdate, **{k: getattr(checked, k) for k in changes})
    fields = {k: _text(changes, k) or None for k in changes}
    if fields.get("phone"):
        fields["phone"] = format_phone(fields["phone"])
    return _build(CustomerUpdate, **fields)


def validate_appointment(data: Mapping[str, Any], now: datetime, pets: Iterable[PetRead] = (),
                         editing: bool = False) -> AppointmentCreate:
    """Check an appointment form holding separate ``date`` and ``time`` fields."""
    errors: Dict[str, str] = {}
    pets = list(pets)
    customer_id = _int(data, "customer_id")
    pet_id = _int(data, "pet_id")
    veterinarian_id = _int(data, "veterinarian_id")
    day = _text(data, "date")
    at = _text(data, "time")
    appointment_type = _text(data, "type")

    if customer_id is None:
        errors["customer_id"] = "Customer is required"
    if pet_id is None:
        errors["pet_id"] = "Pet is required"
    elif customer_id is not None:
        owned = {p.pet_id for p in pets if p.customer_id == customer_id}
        if pets and pet_id not in owned:
            errors["pet_id"] = "Pet does not belong to the selected customer"
    if veterinarian_id is None:
        errors["veterinarian_id"] = "Veterinarian is required"
    if not day:
        errors["date"] = "Date is required"
    if not at:
        errors["time"] = "Time is required"
    if not appointment_type:
        errors["type"] = "Appointment type is required"
    elif appointment_type not in APPOINTMENT_TYPES:
        errors["type"] = "Unknown appointment type"

    when = None
    if day and at:
        try:
            when = datetime.fromisoformat(f"{day}T{at}")
        except ValueError:
            errors["date"] = "Please enter a valid date and time"
        else:
            if when < now and not editing:
                errors["date"] = "Appointment cannot be scheduled in the past"

    duration = _int(data, "duration")
    if _text(data, "duration") and duration is None:
        errors["duration"] = "Duration must be a whole number of minutes"

    if errors:
        raise ValidationError(errors)
    return _build(
        AppointmentCreate,
        customer_id=customer_id,
        pet_id=pet_id,
        veterinarian_id=veterinarian_id,
        appointment_date=when,
        duration=duration or 30,
        type=appointment_type,
        status=_text(data, "status") or "scheduled",
        notes=_text(data, "notes") or None,
    )


_SCHEDULE_FIELDS = ("appointment_date", "date", "time")


def validate_appointment_update(changes: Mapping[str, Any], current: AppointmentRead, now: datetime,
                                pets: Iterable[PetRead] = ()) -> AppointmentUpdate:
    """Check an edit to ``current`` with the appointment form rules.

    The change may carry either a full ``appointment_date`` or the form's
    separate ``date`` and ``time``. Past dates are allowed when editing.
    """
    when = current.appointment_date
    if "appointment_date" in changes:
        try:
            when = normalize_datetime(changes["appointment_date"])
        except (TypeError, ValueError):
            when = None
        if not isinstance(when, datetime):
            raise ValidationError({"appointment_date": "Please enter a valid date and time"})

    form = current.model_dump(exclude={"appointment_id", "appointment_date"})
    form.update({k: v for k, v in changes.items() if k != "appointment_date"})
    form.setdefault("date", when.date().isoformat())
    form.setdefault("time", when.time().isoformat())
    checked = validate_appointment(form, now, pets, editing=True)

    fields = {k: getattr(checked, k) for k in AppointmentUpdate.model_fields if k in changes}
    if any(k in changes for k in _SCHEDULE_FIELDS):
        fields["appointment_date"] = checked.appointment_date
    return _build(AppointmentUpdate, **fields)


def _non_blank(values) -> List[str]:
    return [str(v).strip() for v in (values or []) if str(v).strip()]


def validate_medical_record(data: Mapping[str, Any]) -> MedicalRecordCreate:
    errors: Dict[str, str] = {}
    required = {
        "customer_id": "Customer is required",
        "pet_id": "Pet is required",
        "veterinarian_id": "Veterinarian is required",
    }
    ids = {}
    for key, message in required.items():
        ids[key] = _int(data, key)
        if ids[key] is None:
            errors[key] = message

    record_type = _text(data, "type")
    if not record_type:
        errors["type"] = "Record type is required"
    elif record_type not in RECORD_TYPES:
        errors["type"] = "Unknown record type"
    if not _text(data, "procedure"):
        errors["procedure"] = "Procedure/Treatment is required"
    if not _text(data, "notes"):
        errors["notes"] = "Clinical notes are required"

    cost = _number(data.get("cost"))
    if cost is None and _text(data, "cost"):
        errors["cost"] = "Cost must be a number"

    if errors:
        raise ValidationError(errors)
    return _build(
        MedicalRecordCreate,
        **ids,
        type=record_type,
        procedure=_text(data, "procedure"),
        notes=_text(data, "notes"),
        medications=_non_blank(data.get("medications")),
        equipment=_non_blank(data.get("equipment")),
        cost=cost or 0.0,
    )


def _item(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "service_id": _int(raw, "service_id"),
        "description": _text(raw, "description"),
        "quantity": _number(raw.get("quantity")),
        "price": _number(raw.get("price")),
    }


def validate_invoice(data: Mapping[str, Any], pets: Iterable[PetRead] = ()) -> InvoiceCreate:
    errors: Dict[str, str] = {}
    pets = list(pets)
    customer_id = _int(data, "customer_id")
    pet_id = _int(data, "pet_id")
    invoice_number = _text(data, "invoice_number")

    if customer_id is None:
        errors["customer_id"] = "Customer is required"
    elif pet_id is not None and pets:
        # Pet is optional on an invoice, but when given it must be one of the customer's
        if pet_id not in {p.pet_id for p in pets if p.customer_id == customer_id}:
            errors["pet_id"] = "Pet does not belong to the selected customer"
    if "invoice_number" in data and not invoice_number:
        errors["invoice_number"] = "Invoice number is required"

    items = [_item(raw) for raw in data.get("items") or []]
    valid = [
        i for i in items
        if i["description"] and i["quantity"] is not None and i["quantity"] > 0
        and i["price"] is not None and i["price"] >= 0
    ]
    if not valid:
        errors["items"] = "At least one valid item is required"

    if errors:
        raise ValidationError(errors)
    # Rows without a description are blank lines left in the form
    kept = [InvoiceItem(service_id=i["service_id"], description=i["description"],
                        quantity=i["quantity"] if i["quantity"] is not None else 1,
                        price=i["price"] or 0.0)
            for i in items if i["description"]]
    return _build(
        InvoiceCreate,
        customer_id=customer_id,
        pet_id=pet_id,
        invoice_number=invoice_number or None,
        items=kept,
        notes=_text(data, "notes") or None,
    )
