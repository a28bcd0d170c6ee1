"""
Term (semester) data.
"""

from .wire import WireModel


def term_key(year: int, term: int) -> str:
    """
    The `YYYY-T` identifier used in `term` attributes.
    """
    return f"{year}-{term}"


class TermData(WireModel):
    id: str | None = None
    year: int
    term: int

    # All timestamps are unix timestamps
    beginning: int | None = None
    end: int | None = None
    students_from: int | None = None
    students_until: int | None = None
    teachers_from: int | None = None
    teachers_until: int | None = None
    archive_after: int | None = None

    @property
    def key(self) -> str:
        return term_key(self.year, self.term)
