from models import db
from models.user import Role
from models.court import Court

DEFAULT_ROLES = ["PLAYER", "COACH", "ADMIN", "SUPER_ADMIN"]

OWL = "貓頭鷹時間"
OFF_PEAK = "非繁忙時間"
PEAK = "繁忙時間"

DEFAULT_COURTS = [
    {
        "name": "Court A",
        "number": 1,
        "type": "competition",
        "capacity": 8,
        "amenities": ["air_conditioning", "lighting", "net"],
        "peak_rate": 600,
        "off_peak_rate": 380,
        "time_slots": [
            {"start_time": "00:00", "end_time": "07:00", "price": 320, "name": OWL},
            {"start_time": "07:00", "end_time": "16:00", "price": 380, "name": OFF_PEAK},
            {"start_time": "16:00", "end_time": "23:00", "price": 600, "name": PEAK},
            {"start_time": "23:00", "end_time": "24:00", "price": 320, "name": OWL},
        ],
    },
    {
        "name": "Court B",
        "number": 2,
        "type": "training",
        "capacity": 8,
        "amenities": ["air_conditioning", "lighting", "net"],
        "peak_rate": 380,
        "off_peak_rate": 320,
        "time_slots": [
            {"start_time": "00:00", "end_time": "07:00", "price": 250, "name": OWL},
            {"start_time": "07:00", "end_time": "16:00", "price": 320, "name": OFF_PEAK},
            {"start_time": "16:00", "end_time": "23:00", "price": 380, "name": PEAK},
            {"start_time": "23:00", "end_time": "24:00", "price": 250, "name": OWL},
        ],
    },
    {
        "name": "Court C",
        "number": 3,
        "type": "solo",
        "capacity": 2,
        "amenities": ["air_conditioning", "lighting"],
        "peak_rate": 380,
        "off_peak_rate": 250,
        "time_slots": [
            {"start_time": "08:00", "end_time": "16:00", "price": 250, "name": OFF_PEAK},
            {"start_time": "16:00", "end_time": "23:00", "price": 380, "name": PEAK},
        ],
    },
]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_courts():
    """Insert the default venue layout; courts whose number already exists are left alone."""
    existing = {c.number for c in Court.query.all()}
    created = 0
    for fields in DEFAULT_COURTS:
        if fields["number"] in existing:
            continue
        db.session.add(Court(**fields))
        created += 1
    db.session.commit()
    return created
