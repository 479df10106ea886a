from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from database import Base


APPOINTMENT_STATUSES = ('scheduled', 'confirmed', 'in-progress', 'completed', 'cancelled', 'no-show')
INVOICE_STATUSES = ('pending', 'paid', 'overdue', 'cancelled')

# Every table uses AUTOINCREMENT so ids of deleted rows are never handed out again
_NO_ID_REUSE = {"sqlite_autoincrement": True}


class Customers(Base):
    __tablename__ = "customers"
    __table_args__ = _NO_ID_REUSE

    customer_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    address = Column(Text, nullable=True)
    registration_date = Column(DateTime, nullable=False)
    # One customer -> many pets
    pets = relationship("Pets", back_populates="customer", cascade="all, delete-orphan", order_by="Pets.pet_id")


class Pets(Base):
    __tablename__ = "pets"
    __table_args__ = _NO_ID_REUSE

    pet_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    species = Column(String(50), nullable=False)
    breed = Column(String(100), nullable=True)
    age = Column(Integer, nullable=True)
    weight = Column(String(50), nullable=True)
    allergies = Column(Text, nullable=False, default="None")
    customer_id = Column(Integer, ForeignKey("customers.customer_id"), nullable=False, index=True)
    registration_date = Column(DateTime, nullable=False)
    customer = relationship("Customers", back_populates="pets")


class Veterinarians(Base):
    __tablename__ = "veterinarians"
    __table_args__ = _NO_ID_REUSE

    veterinarian_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    specialization = Column(String(200), nullable=True)
    email = Column(String(255), nullable=False)


class Services(Base):
    __tablename__ = "services"
    __table_args__ = _NO_ID_REUSE

    service_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String(100), nullable=True)


# Appointments, medical records and invoices hold plain id columns: the store decides the
# referential policy, not the database.
class Appointments(Base):
    __tablename__ = "appointments"
    __table_args__ = _NO_ID_REUSE

    appointment_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    pet_id = Column(Integer, nullable=False, index=True)
    veterinarian_id = Column(Integer, nullable=False, index=True)
    appointment_date = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=30)
    type = Column(String(100), nullable=False)
    status = Column(Enum(*APPOINTMENT_STATUSES, name='appointment_status'), nullable=False, default='scheduled', index=True)
    notes = Column(Text, nullable=True)


class MedicalRecords(Base):
    __tablename__ = "medical_records"
    __table_args__ = _NO_ID_REUSE

    record_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    pet_id = Column(Integer, nullable=False, index=True)
    veterinarian_id = Column(Integer, nullable=False, index=True)
    type = Column(String(100), nullable=False)
    procedure = Column(Text, nullable=False)
    notes = Column(Text, nullable=False, default="")
    medications = Column(JSON, nullable=False, default=list)
    equipment = Column(JSON, nullable=False, default=list)
    cost = Column(Float, nullable=False, default=0.0)
    record_date = Column(DateTime, nullable=False)


class Invoices(Base):
    __tablename__ = "invoices"
    __table_args__ = _NO_ID_REUSE

    invoice_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    pet_id = Column(Integer, nullable=True, index=True)
    invoice_number = Column(String(50), nullable=False)
    status = Column(Enum(*INVOICE_STATUSES, name='payment_status'), nullable=False, default='pending')
    subtotal = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    issue_date = Column(DateTime, nullable=False)
    items = relationship("InvoiceItems", back_populates="invoice", cascade="all, delete-orphan",
                         order_by="InvoiceItems.position")


class InvoiceItems(Base):
    __tablename__ = "invoice_items"

    item_id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.invoice_id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    service_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=False)
    quantity = Column(Float, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    invoice = relationship("Invoices", back_populates="items")


Index('ix_appointments_vet_status', Appointments.veterinarian_id, Appointments.status)
