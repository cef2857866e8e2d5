#!/usr/bin/env python3
"""
Seed script for demo congregation data.
Creates members across the role hierarchy with survey progress and results.

Usage:
    python seed_demo_data.py
    python seed_demo_data.py --clear
"""
import random
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ministrypath import database
from ministrypath.models import User
from ministrypath.schemas import SurveyProgressSave
from ministrypath.services import SurveyProgressService, SurveyService

DEMO_DOMAIN = "gracecommunity.example"

# Gifts each demo member leans toward; None leaves the survey untouched
DEMO_MEMBERS: List[Dict] = [
    {"first_name": "David", "last_name": "Chen", "role": "pastor",
     "leanings": ["teaching", "shepherding"], "status": "completed"},
    {"first_name": "Sarah", "last_name": "Mitchell", "role": "admin",
     "leanings": ["administration", "leadership"], "status": "completed"},
    {"first_name": "Marcus", "last_name": "Johnson", "role": "leader",
     "leanings": ["evangelism", "hospitality"], "status": "completed"},
    {"first_name": "Emily", "last_name": "Rodriguez", "role": "member",
     "leanings": ["mercy", "hospitality"], "status": "completed"},
    {"first_name": "James", "last_name": "Thompson", "role": "member",
     "leanings": ["serving", "giving"], "status": "completed"},
    {"first_name": "Priya", "last_name": "Patel", "role": "member",
     "leanings": ["discernment", "intercession"], "status": "in_progress"},
    {"first_name": "Sofia", "last_name": "Martinez", "role": "intern",
     "leanings": ["serving", "hospitality"], "status": "in_progress"},
    {"first_name": "Kevin", "last_name": "Moore", "role": "attendee",
     "leanings": None, "status": "not_started"},
]


def demo_email(member: Dict) -> str:
    return f"{member['first_name'].lower()}.{member['last_name'][0].lower()}@{DEMO_DOMAIN}"


def generate_answers(leanings: List[str], rng: random.Random) -> Dict[str, object]:
    """Answer every question, rating questions for the leaned-toward gifts highly."""
    answers: Dict[str, object] = {}
    for question in SurveyService.get_catalog().questions:
        if question.type == "likert":
            strong = any(g in leanings for g in question.gift_weights)
            answers[question.id] = rng.randint(4, 5) if strong else rng.randint(1, 4)
        elif question.type == "yes-no":
            answers[question.id] = rng.choice(["yes", "no"])
        elif question.options:
            answers[question.id] = rng.choice(question.options).value
    return answers


def seed_database(db: Session, seed: Optional[int] = None) -> int:
    """
    Create the demo members. Existing demo accounts are left alone.

    Returns:
        Number of members created
    """
    rng = random.Random(seed)
    created = 0

    for member in DEMO_MEMBERS:
        email = demo_email(member)
        if db.query(User).filter(User.email == email).first():
            print(f"⚠️  User {email} already exists, skipping...")
            continue

        user = User(
            email=email,
            first_name=member["first_name"],
            last_name=member["last_name"],
            role=member["role"]
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        created += 1
        print(f"👤 Created user: {email} ({member['role']})")

        if member["status"] == "not_started":
            continue

        answers = generate_answers(member["leanings"], rng)
        if member["status"] == "in_progress":
            partial = dict(list(answers.items())[: len(answers) // 2])
            SurveyProgressService.save_progress(
                db, user, SurveyProgressSave(answers=partial, current_section=2)
            )
            print(f"   📝 Saved partial survey ({len(partial)} answers)")
        else:
            result = SurveyService.submit_survey(db, user, answers=answers)
            print(f"   📊 Scored survey, top gift: {result.spiritual_gifts[0]['name']}")

    return created


def clear_demo_data(db: Session) -> int:
    """Remove demo members together with their progress and results."""
    users = db.query(User).filter(User.email.like(f"%@{DEMO_DOMAIN}")).all()
    for user in users:
        db.delete(user)
    db.commit()
    return len(users)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed database with demo congregation data")
    parser.add_argument("--clear", action="store_true", help="Clear demo data instead of seeding")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable answers")
    args = parser.parse_args()

    database.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        if args.clear:
            print(f"🗑️  Removed {clear_demo_data(session)} demo members")
        else:
            print(f"\n🎉 Seeded {seed_database(session, seed=args.seed)} demo members")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
