from app.database import create_db_and_tables, get_session
from app.crud.measurement import seed_metrics_catalog
from app.crud.user import create_user, get_user_by_email
from app.schemas.user import UserCreate, FitnessLevel

def create_initial_user():
    create_db_and_tables()
    session = next(get_session())

    created = seed_metrics_catalog(session)
    print(f"Metrics catalog seeded: {len(created)} new entries")

    user_data = UserCreate(
        email="demo@fittrack.app",
        password="change-me-please",
        full_name="Demo User",
        age=30,
        weight=75.0,
        height=178.0,
        fitness_level=FitnessLevel.INTERMEDIATE
    )
    if get_user_by_email(session, user_data.email):
        print(f"User already exists: {user_data.email}")
        return

    user = create_user(session, user_data)
    print(f"User created successfully: {user.email}")

if __name__ == "__main__":
    create_initial_user()
