# scripts/seed.py
from __future__ import annotations

from datetime import time

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.db import SessionLocal, engine
from app.models.counsellor import Counsellor, CounsellorAvailability

# weekday: 0=Mon ... 6=Sun
COUNSELLORS_DATA = [
    {
        "id": "counsellor-1",
        "name": "Pastor John Smith",
        "title": "Senior Pastoral Counsellor",
        "specialization": ["Marriage & Family", "Pre-Marital", "Faith & Spiritual"],
        "bio": (
            "Pastor John has over 15 years of experience in pastoral counselling. "
            "He specializes in marriage preparation, family therapy, and spiritual guidance."
        ),
        "image_url": "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=400&h=400&fit=crop&crop=face",
        "email": "counselling@elshaddai.com",
        "phone": "+233 50 123 4567",
        "years_of_experience": 15,
        "rating": 4.9,
        "review_count": 127,
        "windows": [(d, "09:00", "17:00") for d in range(4)] + [(4, "09:00", "15:00")],
    },
    {
        "id": "counsellor-2",
        "name": "Dr. Sarah Johnson",
        "title": "Licensed Clinical Psychologist",
        "specialization": ["Anxiety & Stress", "Depression", "Grief & Loss", "Relationship Issues"],
        "bio": (
            "Dr. Sarah is a licensed clinical psychologist with extensive experience "
            "treating anxiety, depression, and grief."
        ),
        "image_url": "https://images.unsplash.com/photo-1494790108377-be9c29b29330?w=400&h=400&fit=crop&crop=face",
        "email": "dr.sarah@elshaddai.com",
        "phone": "+233 50 234 5678",
        "years_of_experience": 12,
        "rating": 4.8,
        "review_count": 98,
        "windows": [(d, "10:00", "18:00") for d in range(4)] + [(4, "10:00", "16:00")],
    },
    {
        "id": "counsellor-3",
        "name": "Rev. Michael Osei",
        "title": "Family & Marriage Counsellor",
        "specialization": ["Marriage & Family", "Addiction Recovery", "Faith & Spiritual"],
        "bio": (
            "Rev. Michael specializes in family dynamics, marriage counselling, "
            "and addiction recovery."
        ),
        "image_url": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400&h=400&fit=crop&crop=face",
        "email": "rev.michael@elshaddai.com",
        "phone": "+233 50 345 6789",
        "years_of_experience": 10,
        "rating": 4.9,
        "review_count": 86,
        "windows": [(d, "08:00", "16:00") for d in range(4)] + [(4, "08:00", "14:00")],
    },
    {
        "id": "counsellor-4",
        "name": "Dr. Emily Chen",
        "title": "Child & Adolescent Psychologist",
        "specialization": ["Child & Adolescent", "Anxiety & Stress", "Relationship Issues"],
        "bio": (
            "Dr. Emily works with young people aged 6-18 on school stress, "
            "family transitions, and emotional regulation."
        ),
        "image_url": "https://images.unsplash.com/photo-1438761681033-6461ffad8d80?w=400&h=400&fit=crop&crop=face",
        "email": "dr.emily@elshaddai.com",
        "phone": "+233 50 456 7890",
        "years_of_experience": 8,
        "rating": 4.7,
        "review_count": 64,
        "windows": [(d, "09:00", "17:00") for d in range(4)],
    },
]


def _hhmm(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def ensure_counsellors(db: Session) -> list[Counsellor]:
    counsellors = []
    for data in COUNSELLORS_DATA:
        fields = {k: v for k, v in data.items() if k != "windows"}
        counsellor = db.get(Counsellor, data["id"])
        if counsellor is None:
            counsellor = Counsellor(**fields)
            db.add(counsellor)
            print(f"[Seed] Counsellor criado: {counsellor.name}")
        else:
            for key, value in fields.items():
                setattr(counsellor, key, value)
            print(f"[Seed] Counsellor atualizado: {counsellor.name}")

        # janelas semanais são recriadas a cada seed
        counsellor.availability = [
            CounsellorAvailability(weekday=wd, starts_at=_hhmm(s), ends_at=_hhmm(e))
            for wd, s, e in data["windows"]
        ]
        counsellors.append(counsellor)

    db.commit()
    return counsellors


def check_tables_exist() -> bool:
    return inspect(engine).has_table("counsellors")


def main():
    print("[Seed] Iniciando seed do banco de dados...")
    if not check_tables_exist():
        print("[Seed] Erro: As tabelas do banco de dados ainda não foram criadas.")
        print("  Execute as migrações antes: alembic upgrade head")
        return

    with SessionLocal() as db:
        counsellors = ensure_counsellors(db)

    print("\n[Seed] Concluído!")
    print("-------------------------------------------------")
    for c in counsellors:
        print(f"- {c.id}: {c.name} <{c.email}>")
    print("-------------------------------------------------")


if __name__ == "__main__":
    main()
