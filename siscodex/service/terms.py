"""
Term helpers: visibility windows, archiving thresholds and the default texts
for planted term groups.
"""

from siscodex.core.models import LocalizedTexts, PlantTexts
from siscodex.core.term import TermData, term_key

__all__ = [
    "term_key",
    "teacher_terms",
    "student_terms",
    "archivable_term_keys",
    "initial_plant_texts",
    "validate_term",
]

_TERM_LABELS = {"cs": {1: "ZS", 2: "LS"}, "en": {1: "Winter", 2: "Summer"}}
_TERM_NAMES = {
    "cs": {1: "Zimní semestr", 2: "Letní semestr"},
    "en": {1: "Winter term", 2: "Summer term"},
}

MISSING_FROM = "The 'from' date must be provided."
MISSING_UNTIL = "The 'until' date must be provided."
BOTH_BEGINNING_AND_END = (
    "The 'beginning' and 'end' dates should be either both provided or both omitted."
)


def _newest_first(terms: list[TermData]) -> list[TermData]:
    return sorted(terms, key=lambda term: (term.year, term.term), reverse=True)


def _within(start: int | None, until: int | None, now: float) -> bool:
    return start is not None and until is not None and start <= now <= until


def teacher_terms(terms: list[TermData], now: float) -> list[TermData]:
    """
    Terms currently open to teachers, newest first.
    """
    return _newest_first(
        [t for t in terms if _within(t.teachers_from, t.teachers_until, now)]
    )


def student_terms(terms: list[TermData], now: float) -> list[TermData]:
    """
    Terms currently open to students, newest first.
    """
    return _newest_first(
        [t for t in terms if _within(t.students_from, t.students_until, now)]
    )


def archivable_term_keys(terms: list[TermData], now: float) -> set[str]:
    return {
        term.key
        for term in terms
        if term.archive_after is not None and term.archive_after <= now
    }


def initial_plant_texts(term: TermData) -> PlantTexts:
    """
    Default names and descriptions of the groups planted for `term`, e.g.
    `2024/25 1-Winter` and `Winter term 2024/25`.
    """
    year = f"{term.year}/{str(term.year + 1)[-2:]}"

    return PlantTexts(
        **{
            locale: LocalizedTexts(
                name=f"{year} {term.term}-{_TERM_LABELS[locale][term.term]}",
                description=f"{_TERM_NAMES[locale][term.term]} {year}",
            )
            for locale in ("cs", "en")
        }
    )


def _visibility_errors(
    errors: dict[str, str], prefix: str, start: int | None, until: int | None
) -> None:
    if not start:
        errors[f"{prefix}_from"] = MISSING_FROM
    if not until:
        errors[f"{prefix}_until"] = MISSING_UNTIL
    if start and until and start >= until:
        errors[f"{prefix}_until"] = (
            f"{prefix.capitalize()} 'until' date must be after 'from' date."
        )


def validate_term(
    term: TermData, existing: list[TermData], term_id: str | None = None
) -> dict[str, str]:
    """
    Validate a term before it is created or updated.

    Parameters
    ----------
    term: TermData
        The new values.
    existing: list[TermData]
        Terms already known; used to refuse duplicate year and term pairs.
    term_id: str | None
        Id of the term being updated, which is excluded from the duplicate
        check. None when creating.

    Returns
    -------
    dict[str, str]
        Error messages keyed by field name. Empty when valid.
    """
    errors = {}

    if not 2000 <= term.year <= 2200:
        errors["year"] = "The year must be between 2000 and 2200."

    if term.term not in _TERM_LABELS["en"]:
        errors["term"] = "The term must be either 1 (winter) or 2 (summer)."
    elif any(t.key == term.key and t.id != term_id for t in existing):
        errors["term"] = f"Term {term.key} already exists."

    if term.end and not term.beginning:
        errors["beginning"] = BOTH_BEGINNING_AND_END
    if term.beginning and not term.end:
        errors["end"] = BOTH_BEGINNING_AND_END
    if term.beginning and term.end and term.beginning >= term.end:
        errors["end"] = "The 'end' date must be after the 'beginning' date."

    _visibility_errors(errors, "students", term.students_from, term.students_until)
    _visibility_errors(errors, "teachers", term.teachers_from, term.teachers_until)

    if (
        term.archive_after
        and term.students_until
        and term.teachers_until
        and term.archive_after < max(term.students_until, term.teachers_until)
    ):
        errors["archive_after"] = (
            "The 'Archive After' date must be after both (student's and "
            "teacher's) visibility periods end."
        )

    return errors
