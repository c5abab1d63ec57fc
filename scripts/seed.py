"""Seed script: load the control catalog and questionnaire into the database.

Creates:
1. ISO/IEC 27001:2022 Annex A controls (a representative subset per theme)
2. Readiness questionnaire questions, grouped by ISO domain

Idempotent: safe to run multiple times. Controls are matched on reference,
questions on (domain, text); existing rows are skipped.

Usage:
    python -m scripts.seed          # against DATABASE_URL from .env
"""

import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncSession

from isms.models.common import new_uuid7
from isms.repositories.records import QuestionnaireRepository
from isms.repositories.soa import ControlRepository

# ---------------------------------------------------------------------------
# Annex A control catalog: (reference, description, domain)
# ---------------------------------------------------------------------------

ORGANIZATIONAL = "Organizational controls"
PEOPLE = "People controls"
PHYSICAL = "Physical controls"
TECHNOLOGICAL = "Technological controls"

ANNEX_A_CONTROLS = [
    ("A.5.1", "Policies for information security", ORGANIZATIONAL),
    ("A.5.2", "Information security roles and responsibilities", ORGANIZATIONAL),
    ("A.5.3", "Segregation of duties", ORGANIZATIONAL),
    ("A.5.7", "Threat intelligence", ORGANIZATIONAL),
    ("A.5.9", "Inventory of information and other associated assets", ORGANIZATIONAL),
    ("A.5.15", "Access control", ORGANIZATIONAL),
    ("A.5.19", "Information security in supplier relationships", ORGANIZATIONAL),
    ("A.5.23", "Information security for use of cloud services", ORGANIZATIONAL),
    ("A.5.24", "Information security incident management planning and preparation",
     ORGANIZATIONAL),
    ("A.5.30", "ICT readiness for business continuity", ORGANIZATIONAL),
    ("A.6.1", "Screening", PEOPLE),
    ("A.6.3", "Information security awareness, education and training", PEOPLE),
    ("A.6.5", "Responsibilities after termination or change of employment", PEOPLE),
    ("A.6.7", "Remote working", PEOPLE),
    ("A.7.1", "Physical security perimeters", PHYSICAL),
    ("A.7.2", "Physical entry", PHYSICAL),
    ("A.7.4", "Physical security monitoring", PHYSICAL),
    ("A.7.10", "Storage media", PHYSICAL),
    ("A.8.1", "User end point devices", TECHNOLOGICAL),
    ("A.8.2", "Privileged access rights", TECHNOLOGICAL),
    ("A.8.5", "Secure authentication", TECHNOLOGICAL),
    ("A.8.7", "Protection against malware", TECHNOLOGICAL),
    ("A.8.8", "Management of technical vulnerabilities", TECHNOLOGICAL),
    ("A.8.13", "Information backup", TECHNOLOGICAL),
    ("A.8.15", "Logging", TECHNOLOGICAL),
    ("A.8.16", "Monitoring activities", TECHNOLOGICAL),
    ("A.8.20", "Networks security", TECHNOLOGICAL),
    ("A.8.24", "Use of cryptography", TECHNOLOGICAL),
    ("A.8.25", "Secure development life cycle", TECHNOLOGICAL),
    ("A.8.32", "Change management", TECHNOLOGICAL),
]

# ---------------------------------------------------------------------------
# Readiness questionnaire: (iso_domain, question_text, guidance)
# ---------------------------------------------------------------------------

QUESTIONNAIRE_QUESTIONS = [
    ("Context of the organization",
     "Has the scope of the ISMS been defined and documented?",
     "Clause 4.3: list the boundaries and interfaces in scope."),
    ("Context of the organization",
     "Have interested parties and their requirements been identified?",
     "Clause 4.2: record stakeholders and their expectations."),
    ("Leadership",
     "Has top management approved an information security policy?",
     "Clause 5.2: the policy should be communicated and available."),
    ("Leadership",
     "Are information security roles and responsibilities assigned?",
     "Clause 5.3"),
    ("Planning",
     "Is there a documented risk assessment process?",
     "Clause 6.1.2: criteria for acceptance and for performing assessments."),
    ("Planning",
     "Has a Statement of Applicability been produced?",
     "Clause 6.1.3 d: justify inclusions and exclusions of Annex A controls."),
    ("Planning",
     "Are measurable information security objectives established?",
     "Clause 6.2"),
    ("Support",
     "Is staff awareness training delivered and tracked?",
     "Clause 7.3"),
    ("Support",
     "Is documented information controlled (versioning, access, retention)?",
     "Clause 7.5"),
    ("Operation",
     "Is the risk treatment plan being implemented?",
     "Clause 8.3"),
    ("Performance evaluation",
     "Is an internal audit programme planned and performed?",
     "Clause 9.2"),
    ("Performance evaluation",
     "Does management review the ISMS at planned intervals?",
     "Clause 9.3"),
    ("Improvement",
     "Are nonconformities recorded with corrective actions?",
     "Clause 10.2"),
]


async def seed_controls(session: AsyncSession) -> int:
    """Insert missing catalog controls; return how many were created."""
    repo = ControlRepository(session)
    created = 0
    for reference, description, domain in ANNEX_A_CONTROLS:
        if await repo.get_by_reference(reference) is not None:
            continue
        await repo.create(
            control_id=new_uuid7(),
            reference=reference,
            description=description,
            domain=domain,
        )
        created += 1
    return created


async def seed_questions(session: AsyncSession) -> int:
    """Insert missing questionnaire questions; return how many were created."""
    repo = QuestionnaireRepository(session)
    created = 0
    for iso_domain, text, guidance in QUESTIONNAIRE_QUESTIONS:
        if await repo.find_question(iso_domain, text) is not None:
            continue
        await repo.create_question(
            question_id=new_uuid7(),
            iso_domain=iso_domain,
            question_text=text,
            guidance=guidance,
        )
        created += 1
    return created


async def seed_catalog(session: AsyncSession) -> dict:
    """Idempotent catalog seed.

    Returns dict with keys: controls_created, questions_created.
    """
    return {
        "controls_created": await seed_controls(session),
        "questions_created": await seed_questions(session),
    }


# ---------------------------------------------------------------------------
# CLI entry point: python -m scripts.seed
# ---------------------------------------------------------------------------


async def _run_seed() -> None:
    """Run the catalog seed against the configured database."""
    from isms.config.settings import get_settings
    from isms.db.session import build_engine, build_session_factory

    engine = build_engine(get_settings())
    try:
        async with build_session_factory(engine)() as session:
            result = await seed_catalog(session)
            await session.commit()
    finally:
        await engine.dispose()

    print("Seed complete.")
    print(f"  Controls:   {result['controls_created']} created"
          f" ({len(ANNEX_A_CONTROLS)} in catalog)")
    print(f"  Questions:  {result['questions_created']} created"
          f" ({len(QUESTIONNAIRE_QUESTIONS)} in questionnaire)")


if __name__ == "__main__":
    asyncio.run(_run_seed())


def __getattr__(name: str):  # type: ignore[misc]
    """Allow `python -m scripts.seed` to work."""
    if name == "__main__":
        asyncio.run(_run_seed())
        sys.exit(0)
    raise AttributeError(name)
