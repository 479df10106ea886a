from typing import List, Optional

from pydantic import BaseModel


class Section(BaseModel):
    name: str
    href: str
    roles: List[str]


NAVIGATION = [
    Section(name='Dashboard', href='/dashboard', roles=['admin', 'veterinarian', 'receptionist']),
    Section(name='Customers', href='/customers', roles=['admin', 'receptionist']),
    Section(name='Appointments', href='/appointments', roles=['admin', 'veterinarian', 'receptionist']),
    Section(name='Medical Records', href='/medical-records', roles=['admin', 'veterinarian']),
    Section(name='Invoices', href='/invoices', roles=['admin', 'receptionist']),
    Section(name='Settings', href='/settings', roles=['admin']),
]


def sections_for(role: Optional[str]) -> List[Section]:
    # Presentation only: the store itself does not check roles
    return [s for s in NAVIGATION if role in s.roles]
