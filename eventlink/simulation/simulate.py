# eventlink/simulation/simulate.py
"""
Simulation script: seeds fake attendees in waves (as if they checked in over
time), runs a matching cycle after each wave, and prints the resulting groups.

Uses services/repositories directly (no HTTP calls).
    python -m eventlink.simulation.simulate
"""
import random

from faker import Faker

from eventlink.infrastructure.db.session import Base, SessionLocal, engine, unit_of_work
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.infrastructure.repositories.task_repo import TaskRepo
from eventlink.services.matching_service import MatchingService
import eventlink.infrastructure.models  # noqa: F401

fake = Faker()
NUM_WAVES = 3
USERS_PER_WAVE = 25

INTEREST_OPTIONS = [
    "Technology", "AI/ML", "Web Development", "Mobile Development", "Data Science",
    "Design", "Marketing", "Business", "Finance", "Healthcare", "Education",
    "Gaming", "Music", "Art", "Sports", "Travel", "Food", "Environment",
    "Social Impact", "Entrepreneurship", "Research",
]
EXPERIENCE = ["beginner", "intermediate", "expert"]


def seed_wave(db, rng: random.Random):
    profiles = ProfileRepo(db)
    tasks = TaskRepo(db)
    # a narrow pool of popular interests so cohorts actually form
    popular = INTEREST_OPTIONS[:5]
    with unit_of_work(db):
        for _ in range(USERS_PER_WAVE):
            interests = rng.sample(popular, 2) + rng.sample(INTEREST_OPTIONS[5:], 1)
            p = profiles.create(
                fake.uuid4(),
                display_name=fake.name(),
                email=fake.email(),
                bio=fake.sentence(),
                interests=interests,
                experience_level=rng.choice(EXPERIENCE),
            )
            tasks.enqueue(p.id, reason="check_in")


def run_simulation(seed: int = 7):
    Base.metadata.create_all(bind=engine)
    rng = random.Random(seed)
    db = SessionLocal()
    try:
        for wave in range(NUM_WAVES):
            seed_wave(db, rng)
            summary = MatchingService(db).run_matching()
            print(
                f"Wave {wave}: created={summary.groups_created} split={summary.groups_split} "
                f"merged={summary.groups_merged} pending={summary.profiles_unassigned} "
                f"anomalies={len(summary.anomalies)}"
            )

        repo = GroupRepo(db)
        for g in repo.query_active():
            print(f"- {g.name}: {g.group_size} members, mentors {g.mentor_ids}")
    finally:
        db.close()


if __name__ == "__main__":
    run_simulation()
