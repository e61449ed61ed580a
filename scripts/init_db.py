import os
from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.db import Base, SessionLocal, engine
from app.models import Profile, Role, SchoolClass
from app.services.auth_service import ensure_role, find_user_by_email, signup_password


ADMIN_EMAIL = os.getenv('SEED_ADMIN_EMAIL', 'admin@campusflow.local')
ADMIN_PASSWORD = os.getenv('SEED_ADMIN_PASSWORD', 'change-me-now')


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    admin = find_user_by_email(db, ADMIN_EMAIL)
    if not admin:
        user_id = signup_password(db, ADMIN_EMAIL, ADMIN_PASSWORD)['user_id']
    else:
        user_id = admin.id
    ensure_role(db, user_id, Role.ADMIN)
    if not db.query(Profile).filter(Profile.user_id == user_id).first():
        db.add(Profile(user_id=user_id, email=ADMIN_EMAIL, first_name='Campus', last_name='Admin', role=Role.ADMIN.value))

    if not db.query(SchoolClass).first():
        db.add_all([
            SchoolClass(name='Grade 10', section='A', created_by=user_id),
            SchoolClass(name='Grade 10', section='B', created_by=user_id),
        ])
    db.commit()
    print(f'Database initialized. Admin login: {ADMIN_EMAIL}')
finally:
    db.close()
