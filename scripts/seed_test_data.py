#!/usr/bin/env python3
"""
Seed a demo event with leads for trying the scoring pipeline locally.

Creates one event ("TechExpo 2025", seeded) with a mix of leads that should
land in each tier once scored.

Usage:
    python scripts/seed_test_data.py          # seed the demo event
    python scripts/seed_test_data.py --clear  # wipe seeded data first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadqual import init_pipeline
from leadqual.database import get_session
from leadqual.models.event import Event
from leadqual.models.lead import Lead


# Name marker for seeded events so we can clear them
SEED_MARKER = '[seed]'

EVENT = {
    'name': f'TechExpo 2025 {SEED_MARKER}',
    'location': 'San Francisco, CA',
    'status': 'active',
    'lead_scoring_criteria': (
        'Engineering or IT leaders at software companies with 200+ employees who '
        'own tooling budget and are evaluating developer productivity platforms.'
    ),
}

LEADS = [
    {'first_name': 'John',    'last_name': 'Smith',    'title': 'CTO',                'company': 'TechCorp',             'notes': 'Interested in enterprise plan'},
    {'first_name': 'Emily',   'last_name': 'Davis',    'title': 'Product Manager',    'company': 'InnovateSoft',         'notes': 'Looking for integration options'},
    {'first_name': 'Robert',  'last_name': 'Wilson',   'title': 'IT Director',        'company': 'Enterprise Solutions', 'notes': 'Needs follow-up about security features'},
    {'first_name': 'Jessica', 'last_name': 'Brown',    'title': 'Marketing Intern',   'company': 'Local Bakery',         'notes': 'Stopped by for swag'},
    {'first_name': 'Michael', 'last_name': 'Lee',      'title': 'VP Engineering',     'company': 'CloudScale',           'notes': 'Decision maker, budget authority'},
    {'first_name': 'Sarah',   'last_name': 'Garcia',   'title': 'Software Engineer',  'company': 'DataFlow',             'notes': ''},
    {'first_name': 'David',   'last_name': 'Martinez', 'title': 'Student',            'company': '',                     'notes': 'Asked about internships'},
]


def _email(lead):
    return f"{lead['first_name'].lower()}.{lead['last_name'].lower()}@example.com"


def clear_seeded(session):
    events = session.query(Event).filter(Event.name.like(f'%{SEED_MARKER}%')).all()
    for event in events:
        session.query(Lead).filter(Lead.event_id == event.id).delete()
        session.delete(event)
    session.commit()
    print(f"Cleared {len(events)} seeded event(s)")


def seed(session):
    event = Event(**EVENT)
    session.add(event)
    session.flush()
    for lead in LEADS:
        session.add(Lead(event_id=event.id, email=_email(lead), source='scan', **lead))
    session.commit()
    print(f"Seeded event {event.id} with {len(LEADS)} leads")
    return event.id


def main():
    parser = argparse.ArgumentParser(description='Seed a demo event for lead scoring')
    parser.add_argument('--clear', action='store_true', help='Clear seeded data before seeding')
    parser.add_argument('--clear-only', action='store_true', help='Only clear, do not re-seed')
    args = parser.parse_args()

    init_pipeline(create_tables=True)

    session = get_session()
    try:
        if args.clear or args.clear_only:
            clear_seeded(session)
        if not args.clear_only:
            seed(session)
    finally:
        session.close()


if __name__ == '__main__':
    main()
