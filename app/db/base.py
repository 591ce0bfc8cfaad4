# Garante o registro de TODAS as models no mesmo registry
from app.db.base_class import Base  # noqa
from app.models.counselling_booking import CounsellingBooking  # noqa
from app.models.counsellor import Counsellor, CounsellorAvailability  # noqa
