import logging
import os
from typing import Any, Callable

import httpx

from dashboard_client.session import Session

API_BASE = os.getenv('STUDENT_RECORDS_API_URL', 'http://localhost:8080')

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A non-2xx answer from the API, carrying the server's message."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class SessionExpired(ApiError):
    """Raised on any 401; the local session has already been cleared."""


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or 'Request failed'
    if isinstance(data, dict):
        return data.get('detail') or data.get('message') or 'Request failed'
    return 'Request failed'


class StudentRecordsClient:
    def __init__(self, session: Session, http: httpx.Client | None = None, base_url: str = API_BASE) -> None:
        self.session = session
        self._owns_http = http is None
        self.http = httpx.Client(base_url=base_url) if http is None else http

    def close(self) -> None:
        """Close the underlying transport if this client created it."""
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> 'StudentRecordsClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        token = self.session.token
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        response = self.http.request(method, path, json=payload, headers=self._headers())

        if response.status_code == 401:
            message = _error_message(response)
            if self.session.is_authenticated:
                logger.info('Session rejected by server (%s); clearing local session', message)
            self.session.clear()
            raise SessionExpired(401, message)

        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))

        return response.json()

    # --- auth ---

    def register(self, full_name: str, email: str, password: str) -> dict:
        data = self._request('POST', '/api/register', {'fullName': full_name, 'email': email, 'password': password})
        self.session.save(data['token'], data['user'])
        return data['user']

    def login(self, email: str, password: str) -> dict:
        data = self._request('POST', '/api/login', {'email': email, 'password': password})
        self.session.save(data['token'], data['user'])
        return data['user']

    def logout(self) -> None:
        # Tokens are not revoked server-side.
        self.session.clear()

    def me(self) -> dict:
        return self._request('GET', '/api/me')['user']

    def update_profile(
        self,
        full_name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> dict:
        payload = {
            key: value
            for key, value in (('fullName', full_name), ('email', email), ('password', password))
            if value is not None
        }
        user = self._request('PUT', '/api/profile', payload)['user']
        self.session.update_user(user)
        return user

    # --- students ---

    def list_students(self) -> list[dict]:
        return self._request('GET', '/api/students')

    def get_student(self, student_id: str) -> dict:
        return self._request('GET', f'/api/students/{student_id}')

    def create_student(self, payload: dict) -> dict:
        return self._request('POST', '/api/students', payload)

    def update_student(self, student_id: str, payload: dict) -> dict:
        return self._request('PUT', f'/api/students/{student_id}', payload)

    def delete_student(self, student: dict, confirm: Callable[[dict], bool]) -> bool:
        """Delete ``student`` once ``confirm`` agrees; returns whether a request was sent."""
        if not confirm(student):
            return False
        self._request('DELETE', f"/api/students/{student['id']}")
        return True
