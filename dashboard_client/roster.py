"""Roster view state for the dashboard: search, pagination and the add/edit form."""

import math
from dataclasses import dataclass, field

from dashboard_client.api import ApiError, SessionExpired, StudentRecordsClient

PAGE_SIZE = 10
SEARCH_FIELDS = ('fullName', 'studentId', 'email', 'grade')
FORM_FIELDS = ('fullName', 'studentId', 'email', 'grade', 'enrollmentDate')
REQUIRED_FIELDS_MESSAGE = 'Full name, Student ID and Email are required.'


def filter_students(students: list[dict], query: str) -> list[dict]:
    """Case-insensitive prefix match of ``query`` against the search fields."""
    needle = query.strip().lower()
    if not needle:
        return list(students)
    return [
        student
        for student in students
        if any((student.get(key) or '').lower().startswith(needle) for key in SEARCH_FIELDS)
    ]


@dataclass
class Page:
    number: int
    total_pages: int
    total_count: int
    items: list[dict] = field(default_factory=list)


def total_pages_for(count: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(1, page), total_pages)


def paginate(items: list[dict], page: int, page_size: int = PAGE_SIZE) -> Page:
    total_pages = total_pages_for(len(items), page_size)
    number = clamp_page(page, total_pages)
    start = (number - 1) * page_size
    return Page(
        number=number,
        total_pages=total_pages,
        total_count=len(items),
        items=items[start:start + page_size],
    )


class RosterView:
    def __init__(self, students: list[dict] | None = None, page_size: int = PAGE_SIZE) -> None:
        self.page_size = page_size
        self._students: list[dict] = list(students or [])
        self._search = ''
        self._current_page = 1

    @property
    def students(self) -> list[dict]:
        return list(self._students)

    def set_students(self, students: list[dict]) -> None:
        self._students = list(students)
        self._clamp()

    @property
    def search(self) -> str:
        return self._search

    @search.setter
    def search(self, value: str) -> None:
        if value != self._search:
            self._current_page = 1
        self._search = value

    @property
    def filtered(self) -> list[dict]:
        return filter_students(self._students, self._search)

    @property
    def current_page(self) -> int:
        return self._current_page

    def go_to(self, page: int) -> Page:
        self._current_page = page
        self._clamp()
        return self.page

    def next_page(self) -> Page:
        return self.go_to(self._current_page + 1)

    def previous_page(self) -> Page:
        return self.go_to(self._current_page - 1)

    @property
    def page(self) -> Page:
        return paginate(self.filtered, self._current_page, self.page_size)

    def refresh(self, client: StudentRecordsClient) -> None:
        self.set_students(client.list_students())

    def _clamp(self) -> None:
        self._current_page = clamp_page(
            self._current_page,
            total_pages_for(len(self.filtered), self.page_size),
        )


class StudentForm:
    """The single add/edit modal, keyed by ``mode``."""

    ADD = 'add'
    EDIT = 'edit'

    def __init__(self) -> None:
        self.mode: str | None = None
        self.editing: dict | None = None
        self.values = dict.fromkeys(FORM_FIELDS, '')
        self.error: str | None = None

    @property
    def is_open(self) -> bool:
        return self.mode is not None

    def open_add(self) -> None:
        self.mode = self.ADD
        self.editing = None
        self.values = dict.fromkeys(FORM_FIELDS, '')
        self.error = None

    def open_edit(self, student: dict) -> None:
        self.mode = self.EDIT
        self.editing = student
        self.values = {key: student.get(key) or '' for key in FORM_FIELDS}
        self.values['enrollmentDate'] = self.values['enrollmentDate'][:10]
        self.error = None

    def close(self) -> None:
        self.mode = None
        self.editing = None
        self.error = None

    def set(self, key: str, value: str) -> None:
        if key not in FORM_FIELDS:
            raise KeyError(key)
        self.values[key] = value

    def validate(self) -> str | None:
        if not all(self.values[key].strip() for key in ('fullName', 'studentId', 'email')):
            return REQUIRED_FIELDS_MESSAGE
        return None

    def payload(self) -> dict:
        payload = {key: self.values[key].strip() for key in ('fullName', 'studentId', 'email')}
        grade = self.values['grade'].strip()
        enrollment_date = self.values['enrollmentDate'].strip()
        if self.mode == self.EDIT:
            # Empty strings are sent on edit so a cleared field is cleared server-side.
            payload['grade'] = grade
            payload['enrollmentDate'] = enrollment_date
        else:
            if grade:
                payload['grade'] = grade
            if enrollment_date:
                payload['enrollmentDate'] = enrollment_date
        return payload

    def submit(self, client: StudentRecordsClient) -> dict | None:
        """Create or update through ``client``; on failure keep the form open with ``error`` set."""
        if not self.is_open:
            raise RuntimeError('Form is not open')

        self.error = self.validate()
        if self.error:
            return None

        try:
            if self.mode == self.ADD:
                student = client.create_student(self.payload())
            else:
                student = client.update_student(self.editing['id'], self.payload())
        except SessionExpired:
            raise
        except ApiError as exc:
            self.error = exc.message
            return None

        self.close()
        return student
