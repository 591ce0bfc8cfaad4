from app.models.counselling_booking import (  # noqa: F401
    ACTIVE_STATUSES,
    BookingStatus,
    BookingType,
    CounsellingBooking,
)
from app.models.counsellor import Counsellor, CounsellorAvailability  # noqa: F401
