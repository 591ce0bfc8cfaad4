from app.wizard.api_client import ApiEnvelope, ApiTransportError, CounsellingApiClient
from app.wizard.booking_wizard import BOOKING_FAILED, BookingWizard
from app.wizard.date_navigator import DateNavigator
from app.wizard.directory import CounsellorDirectory
from app.wizard.slot_index import SlotIndex

__all__ = [
    "ApiEnvelope",
    "ApiTransportError",
    "BOOKING_FAILED",
    "BookingWizard",
    "CounsellingApiClient",
    "CounsellorDirectory",
    "DateNavigator",
    "SlotIndex",
]
