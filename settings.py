import logging
import os

from pydantic import BaseModel


# In-memory SQLite: every store gets its own private database that disappears with it
DATABASE_URL = "sqlite://"

TAX_RATE = 0.08

# Key of the local slot holding the signed-in user
SESSION_KEY = "vetcare_user"
SESSION_FILE = os.getenv("VETCARE_SESSION_FILE")

LOG_LEVEL = os.getenv("VETCARE_LOG_LEVEL", "INFO")


class ClinicProfile(BaseModel):
    name: str = "VetCare Animal Hospital"
    phone: str = "(555) 123-4567"
    email: str = "info@vetcare.com"
    address: str = "123 Veterinary Way, Pet City, PC 12345"
    tax_rate: float = TAX_RATE


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
