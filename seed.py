from datetime import datetime

import models


CUSTOMERS = [
    {"customer_id": 1, "name": "John Smith", "email": "john@email.com", "phone": "555-0101", "address": "123 Main St, Anytown, ST 12345"},
    {"customer_id": 2, "name": "Sarah Wilson", "email": "sarah@email.com", "phone": "555-0102", "address": "456 Oak Ave, Anytown, ST 12345"},
    {"customer_id": 3, "name": "Mike Johnson", "email": "mike@email.com", "phone": "555-0103", "address": "789 Pine Rd, Anytown, ST 12345"},
]

PETS = [
    {"pet_id": 1, "name": "Buddy", "species": "Dog", "breed": "Golden Retriever", "age": 3, "customer_id": 1, "allergies": "None", "weight": "65 lbs"},
    {"pet_id": 2, "name": "Whiskers", "species": "Cat", "breed": "Persian", "age": 2, "customer_id": 1, "allergies": "Chicken", "weight": "8 lbs"},
    {"pet_id": 3, "name": "Max", "species": "Dog", "breed": "German Shepherd", "age": 5, "customer_id": 2, "allergies": "None", "weight": "75 lbs"},
    {"pet_id": 4, "name": "Luna", "species": "Cat", "breed": "Siamese", "age": 1, "customer_id": 3, "allergies": "Fish", "weight": "6 lbs"},
]

VETERINARIANS = [
    {"veterinarian_id": 1, "name": "Dr. Sarah Johnson", "specialization": "General Practice", "email": "sarah.j@vetcare.com"},
    {"veterinarian_id": 2, "name": "Dr. Michael Chen", "specialization": "Surgery", "email": "michael.c@vetcare.com"},
    {"veterinarian_id": 3, "name": "Dr. Emily Rodriguez", "specialization": "Dermatology", "email": "emily.r@vetcare.com"},
]

SERVICES = [
    {"service_id": 1, "name": "Consultation", "price": 75, "category": "Examination"},
    {"service_id": 2, "name": "Vaccination", "price": 45, "category": "Preventive"},
    {"service_id": 3, "name": "Surgery", "price": 500, "category": "Treatment"},
    {"service_id": 4, "name": "Dental Cleaning", "price": 200, "category": "Dental"},
    {"service_id": 5, "name": "X-Ray", "price": 150, "category": "Diagnostics"},
]

APPOINTMENTS = [
    {
        "appointment_id": 1,
        "customer_id": 1,
        "pet_id": 1,
        "veterinarian_id": 1,
        "appointment_date": datetime(2024, 1, 15, 10, 0),
        "duration": 30,
        "type": "Consultation",
        "status": "scheduled",
        "notes": "Annual checkup",
    },
    {
        "appointment_id": 2,
        "customer_id": 2,
        "pet_id": 3,
        "veterinarian_id": 2,
        "appointment_date": datetime(2024, 1, 15, 14, 0),
        "duration": 60,
        "type": "Surgery",
        "status": "scheduled",
        "notes": "Spay surgery",
    },
]


def populate(db, now: datetime) -> dict:
    """Add the starting dataset to an open session; the caller commits.

    Customers and pets are registered at ``now``, the store clock.

    Creates:
    - 3 customers owning 4 pets
    - 3 veterinarians
    - 5 catalogue services
    - 2 appointments on 2024-01-15
    """
    # ----- Reference data -----
    db.add_all(models.Veterinarians(**v) for v in VETERINARIANS)
    db.add_all(models.Services(**s) for s in SERVICES)

    # ----- Customers and their pets -----
    db.add_all(models.Customers(**c, registration_date=now) for c in CUSTOMERS)
    db.flush()
    db.add_all(models.Pets(**p, registration_date=now) for p in PETS)

    # ----- Appointments -----
    db.add_all(models.Appointments(**a) for a in APPOINTMENTS)
    db.flush()

    return {
        "customers": len(CUSTOMERS),
        "pets": len(PETS),
        "veterinarians": len(VETERINARIANS),
        "services": len(SERVICES),
        "appointments": len(APPOINTMENTS),
    }
