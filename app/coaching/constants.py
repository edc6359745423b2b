"""
Central constants for the coaching platform.
"""
from __future__ import annotations

# Role keys, highest authority first
ROLE_SUPER_ADMIN = "super_admin"
ROLE_COACH = "coach"
ROLE_STUDENT = "student"
ROLE_PRECEDENCE = (ROLE_SUPER_ADMIN, ROLE_COACH, ROLE_STUDENT)
ROLE_LABELS = {
    ROLE_SUPER_ADMIN: "Super Admin",
    ROLE_COACH: "Coach",
    ROLE_STUDENT: "Student",
}

# Payment status values stored on the profile
PAYMENT_PAID = "paid"
PAYMENT_PENDING = "pending"
PAYMENT_OVERDUE = "overdue"
PAYMENT_STATUSES = (PAYMENT_PAID, PAYMENT_PENDING, PAYMENT_OVERDUE)

# Plan type -> length in months
PLAN_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "semiannual": 6,
}

PHOTO_KINDS = ("front", "side", "back")

# Permission key -> display name, per role
ROLE_PERMISSIONS: dict[str, dict[str, str]] = {
    ROLE_STUDENT: {
        "student.view": "Student area: view",
    },
    ROLE_COACH: {
        "admin.view": "Coach area: view",
        "students.view": "Students: view",
        "students.invite": "Students: invite",
        "students.edit": "Students: edit plan and status",
        "students.archive": "Students: archive",
        "workouts.upload": "Workouts: upload PDFs",
        "routines.manage": "Routines: manage",
        "exercises.manage": "Exercise library: manage",
        "partners.manage": "Partners: manage",
        "reports.view": "Reports: view",
    },
}
ROLE_PERMISSIONS[ROLE_SUPER_ADMIN] = {
    **ROLE_PERMISSIONS[ROLE_COACH],
    "roles.assign": "Roles: assign",
}

# Starter exercise library (seeded by scripts/init_db.py)
DEFAULT_EXERCISES = (
    ("Squat", "Legs"),
    ("Bench Press", "Chest"),
    ("Deadlift", "Back"),
    ("Barbell Row", "Back"),
    ("Overhead Press", "Shoulders"),
    ("Pull-up", "Back"),
    ("Lunge", "Legs"),
    ("Biceps Curl", "Arms"),
    ("Triceps Pushdown", "Arms"),
    ("Plank", "Core"),
)
