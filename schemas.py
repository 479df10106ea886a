from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Optional, List, Literal
from datetime import date, datetime, time, timezone


AppointmentStatus = Literal['scheduled', 'confirmed', 'in-progress', 'completed', 'cancelled', 'no-show']
InvoiceStatus = Literal['pending', 'paid', 'overdue', 'cancelled']

APPOINTMENT_TYPES = [
    'Consultation',
    'Vaccination',
    'Surgery',
    'Dental Cleaning',
    'Check-up',
    'Emergency',
    'Follow-up',
    'Grooming',
    'Spay/Neuter',
    'X-Ray',
    'Blood Work',
]

RECORD_TYPES = [
    'Consultation',
    'Surgery',
    'Vaccination',
    'Dental',
    'Diagnostic',
    'Treatment',
    'Emergency',
    'Follow-up',
    'Preventive Care',
    'Laboratory Tests',
]


def normalize_datetime(value):
    """Bring an appointment date into the canonical naive date-time form.

    ISO strings and plain dates are accepted; a plain date means midnight.
    Aware values are converted to UTC and stripped of their tzinfo.
    """
    if value is None:
        return value
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------- Customers / Pets ----------------


class CustomerBase(BaseModel):
    name: str = Field(..., max_length=200)
    email: EmailStr
    phone: str = Field(..., max_length=20)
    address: Optional[str] = None


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None


class CustomerRead(CustomerBase):
    customer_id: int
    registration_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PetBase(BaseModel):
    name: str = Field(..., max_length=100)
    species: str = Field(..., max_length=50)
    breed: Optional[str] = Field(None, max_length=100)
    age: Optional[int] = Field(None, ge=0)
    weight: Optional[str] = Field(None, max_length=50)
    allergies: str = "None"
    customer_id: int


class PetCreate(PetBase):
    pass


class PetUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    species: Optional[str] = Field(None, max_length=50)
    breed: Optional[str] = Field(None, max_length=100)
    age: Optional[int] = Field(None, ge=0)
    weight: Optional[str] = Field(None, max_length=50)
    allergies: Optional[str] = None
    customer_id: Optional[int] = None


class PetRead(PetBase):
    pet_id: int
    registration_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------- Reference data ----------------


class VeterinarianRead(BaseModel):
    veterinarian_id: int
    name: str
    specialization: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


class ServiceRead(BaseModel):
    service_id: int
    name: str
    price: float
    category: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------- Appointments ----------------


class AppointmentBase(BaseModel):
    customer_id: int
    pet_id: int
    veterinarian_id: int
    appointment_date: datetime
    duration: int = Field(30, gt=0)
    type: str
    status: AppointmentStatus = 'scheduled'
    notes: Optional[str] = None

    @field_validator('appointment_date', mode='before')
    @classmethod
    def _normalize_date(cls, value):
        return normalize_datetime(value)


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentUpdate(BaseModel):
    customer_id: Optional[int] = None
    pet_id: Optional[int] = None
    veterinarian_id: Optional[int] = None
    appointment_date: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0)
    type: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @field_validator('appointment_date', mode='before')
    @classmethod
    def _normalize_date(cls, value):
        return normalize_datetime(value)


class AppointmentRead(AppointmentBase):
    appointment_id: int

    model_config = ConfigDict(from_attributes=True)


# ---------------- Medical records ----------------


class MedicalRecordBase(BaseModel):
    customer_id: int
    pet_id: int
    veterinarian_id: int
    type: str
    procedure: str
    notes: str = ""
    medications: List[str] = []
    equipment: List[str] = []
    cost: float = 0.0


class MedicalRecordCreate(MedicalRecordBase):
    # Accepted for symmetry with the read model; the store always stamps its own date
    record_date: Optional[datetime] = None


class MedicalRecordUpdate(BaseModel):
    customer_id: Optional[int] = None
    pet_id: Optional[int] = None
    veterinarian_id: Optional[int] = None
    type: Optional[str] = None
    procedure: Optional[str] = None
    notes: Optional[str] = None
    medications: Optional[List[str]] = None
    equipment: Optional[List[str]] = None
    cost: Optional[float] = None


class MedicalRecordRead(MedicalRecordBase):
    record_id: int
    record_date: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------- Invoices ----------------


class InvoiceItem(BaseModel):
    service_id: Optional[int] = None
    description: str
    quantity: float = 1
    price: float = 0.0

    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    customer_id: int
    pet_id: Optional[int] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    # Ignored on creation: new invoices always start out pending
    status: Optional[InvoiceStatus] = None
    items: List[InvoiceItem] = []
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    customer_id: Optional[int] = None
    pet_id: Optional[int] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    status: Optional[InvoiceStatus] = None
    items: Optional[List[InvoiceItem]] = None
    notes: Optional[str] = None


class InvoiceRead(BaseModel):
    invoice_id: int
    customer_id: int
    pet_id: Optional[int] = None
    invoice_number: str
    status: InvoiceStatus
    items: List[InvoiceItem] = []
    subtotal: float
    tax_amount: float
    total_amount: float
    notes: Optional[str] = None
    issue_date: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceTotals(BaseModel):
    subtotal: float
    tax_amount: float
    total_amount: float


# ---------------- Collections / nested views ----------------


class CustomerWithPets(CustomerRead):
    pets: List[PetRead] = []


class PetWithHistory(PetRead):
    appointments: List[AppointmentRead] = []
    medical_records: List[MedicalRecordRead] = []
