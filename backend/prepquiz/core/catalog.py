"""Exam catalog — exams, subjects per exam, difficulty levels and time limits."""

from __future__ import annotations

from typing import Dict, List

# ── Exams & Subjects ──────────────────────────────────────────

EXAMS: List[str] = ["JEE", "NEET"]

SUBJECTS_BY_EXAM: Dict[str, List[str]] = {
    "JEE": ["Physics", "Chemistry", "Maths"],
    "NEET": ["Physics", "Chemistry", "Biology"],
}

# ── Difficulty Levels ─────────────────────────────────────────

LEVEL_BOARDS = "Level 3: Boards"
LEVEL_MAINS = "Level 2: Mains/NEET"
LEVEL_ADVANCED = "Level 1: Advanced"

LEVELS: List[str] = [LEVEL_BOARDS, LEVEL_MAINS, LEVEL_ADVANCED]

# Reserved topic meaning "sample the whole subject syllabus"
FOUNDATIONAL_TOPIC = "Foundational Concepts"

# ── Time Limits (seconds) ─────────────────────────────────────

TIME_LIMITS: Dict[str, int] = {
    LEVEL_ADVANCED: 60 * 60,
    LEVEL_BOARDS: 60 * 60,
    LEVEL_MAINS: 45 * 60,
}
_DEFAULT_TIME_LIMIT = 45 * 60


def subjects_for(exam: str) -> List[str]:
    """Return allowed subjects for *exam* (empty list if unknown)."""
    return list(SUBJECTS_BY_EXAM.get(exam, []))


def is_valid_subject(exam: str, subject: str) -> bool:
    return subject in SUBJECTS_BY_EXAM.get(exam, [])


def time_limit_for(level: str) -> int:
    return TIME_LIMITS.get(level, _DEFAULT_TIME_LIMIT)


def get_catalog() -> dict:
    """Serializable catalog for the setup screen."""
    return {
        "exams": list(EXAMS),
        "subjects": {exam: subjects_for(exam) for exam in EXAMS},
        "levels": list(LEVELS),
        "time_limits": dict(TIME_LIMITS),
        "foundational_topic": FOUNDATIONAL_TOPIC,
    }
