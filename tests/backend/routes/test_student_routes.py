from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as OrmSession

from backend.models.student import Student
from backend.routes.student_routes import (
    StudentCreateRequest,
    StudentUpdateRequest,
    create_student,
    delete_student,
    get_student,
    list_students,
    update_student,
)


def _auth_headers(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def _create_student(client, token: str, **fields) -> dict:
    payload = {'fullName': 'Jane Doe', 'studentId': 'S1', 'email': 'jane@x.com', **fields}
    response = client.post('/api/students', json=payload, headers=_auth_headers(token))
    assert response.status_code == 201, response.text
    return response.json()


def test_create_student_applies_defaults(client, owner) -> None:
    student = _create_student(client, owner['token'])

    assert student['fullName'] == 'Jane Doe'
    assert student['studentId'] == 'S1'
    assert student['email'] == 'jane@x.com'
    assert student['grade'] == ''
    assert student['enrollmentDate'] is None
    assert student['userId'] == owner['user']['id']
    assert student['createdAt'] and student['updatedAt']


def test_create_student_parses_enrollment_date(client, owner) -> None:
    student = _create_student(client, owner['token'], grade='10', enrollmentDate='2024-09-01T00:00:00.000Z')

    assert student['grade'] == '10'
    assert student['enrollmentDate'] == '2024-09-01'


def test_create_student_trims_and_lowercases_email(client, owner) -> None:
    student = _create_student(client, owner['token'], fullName='  Jane Doe ', email=' Jane@X.com ')

    assert student['fullName'] == 'Jane Doe'
    assert student['email'] == 'jane@x.com'


@pytest.mark.parametrize('missing', ['fullName', 'studentId', 'email'])
def test_create_student_requires_core_fields(client, owner, missing: str) -> None:
    payload = {'fullName': 'Jane Doe', 'studentId': 'S1', 'email': 'jane@x.com'}
    del payload[missing]

    response = client.post('/api/students', json=payload, headers=_auth_headers(owner['token']))

    assert response.status_code == 400
    assert response.json()['detail'] == 'fullName, studentId and email are required'


def test_create_student_rejects_unparseable_enrollment_date(client, owner) -> None:
    response = client.post(
        '/api/students',
        json={'fullName': 'Jane Doe', 'studentId': 'S1', 'email': 'jane@x.com', 'enrollmentDate': 'someday'},
        headers=_auth_headers(owner['token']),
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'Invalid enrollment date'


def test_duplicate_student_ids_and_emails_are_allowed(client, owner) -> None:
    _create_student(client, owner['token'])
    _create_student(client, owner['token'])

    response = client.get('/api/students', headers=_auth_headers(owner['token']))

    assert len(response.json()) == 2


def test_student_routes_require_authentication(client) -> None:
    assert client.get('/api/students').status_code == 401
    assert client.post('/api/students', json={}).status_code == 401
    assert client.delete('/api/students/anything').status_code == 401


def test_list_students_orders_newest_first(client, db, owner) -> None:
    for index, created_at in enumerate([datetime(2024, 1, 1), datetime(2024, 3, 1), datetime(2024, 2, 1)]):
        db.add(Student(
            user_id=owner['user']['id'],
            full_name=f'Student {index}',
            student_id=f'S{index}',
            email=f's{index}@x.com',
            created_at=created_at,
        ))
    db.commit()

    response = client.get('/api/students', headers=_auth_headers(owner['token']))

    assert response.status_code == 200
    assert [student['fullName'] for student in response.json()] == ['Student 1', 'Student 2', 'Student 0']


def test_get_student_returns_owned_record(client, owner) -> None:
    created = _create_student(client, owner['token'])

    response = client.get(f"/api/students/{created['id']}", headers=_auth_headers(owner['token']))

    assert response.status_code == 200
    assert response.json() == created


def test_get_student_returns_not_found_for_unknown_id(client, owner) -> None:
    response = client.get('/api/students/does-not-exist', headers=_auth_headers(owner['token']))

    assert response.status_code == 404
    assert response.json()['detail'] == 'Student not found'


def test_students_of_other_users_are_invisible(client, owner, other_user) -> None:
    created = _create_student(client, owner['token'])
    other_headers = _auth_headers(other_user['token'])
    path = f"/api/students/{created['id']}"

    assert client.get('/api/students', headers=other_headers).json() == []
    assert client.get(path, headers=other_headers).status_code == 404
    assert client.put(path, json={'grade': 'F'}, headers=other_headers).status_code == 404
    assert client.delete(path, headers=other_headers).status_code == 404

    untouched = client.get(path, headers=_auth_headers(owner['token'])).json()
    assert untouched == created


def test_update_student_only_changes_supplied_fields(client, owner) -> None:
    created = _create_student(client, owner['token'], grade='9', enrollmentDate='2024-09-01')

    response = client.put(
        f"/api/students/{created['id']}",
        json={'grade': '10'},
        headers=_auth_headers(owner['token']),
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated['grade'] == '10'
    assert updated['fullName'] == created['fullName']
    assert updated['studentId'] == created['studentId']
    assert updated['email'] == created['email']
    assert updated['enrollmentDate'] == '2024-09-01'


def test_update_student_null_keeps_grade_but_empty_string_clears_it(client, owner) -> None:
    created = _create_student(client, owner['token'], grade='9')
    path = f"/api/students/{created['id']}"
    headers = _auth_headers(owner['token'])

    omitted = client.put(path, json={'fullName': 'Jane Q. Doe'}, headers=headers).json()
    explicit_null = client.put(path, json={'grade': None}, headers=headers).json()
    cleared = client.put(path, json={'grade': ''}, headers=headers).json()

    assert omitted['grade'] == '9'
    assert explicit_null['grade'] == '9'
    assert cleared['grade'] == ''
    assert cleared['fullName'] == 'Jane Q. Doe'


def test_update_student_empty_enrollment_date_clears_it(client, owner) -> None:
    created = _create_student(client, owner['token'], enrollmentDate='2024-09-01')
    path = f"/api/students/{created['id']}"
    headers = _auth_headers(owner['token'])

    kept = client.put(path, json={'grade': 'A'}, headers=headers).json()
    cleared = client.put(path, json={'enrollmentDate': ''}, headers=headers).json()

    assert kept['enrollmentDate'] == '2024-09-01'
    assert cleared['enrollmentDate'] is None


def test_update_student_rejects_blank_required_field(client, owner) -> None:
    created = _create_student(client, owner['token'])
    path = f"/api/students/{created['id']}"

    response = client.put(path, json={'fullName': '   '}, headers=_auth_headers(owner['token']))

    assert response.status_code == 400
    assert client.get(path, headers=_auth_headers(owner['token'])).json()['fullName'] == 'Jane Doe'


def test_delete_student_removes_record(client, owner) -> None:
    created = _create_student(client, owner['token'])
    path = f"/api/students/{created['id']}"
    headers = _auth_headers(owner['token'])

    response = client.delete(path, headers=headers)

    assert response.status_code == 200
    assert response.json() == {'message': 'Student deleted'}
    assert client.get(path, headers=headers).status_code == 404
    assert client.delete(path, headers=headers).status_code == 404


def test_register_create_list_delete_round_trip(client, register_user) -> None:
    headers = _auth_headers(register_user(email='u@example.com')['token'])

    created = client.post(
        '/api/students',
        json={'fullName': 'Jane Doe', 'studentId': 'S1', 'email': 'jane@x.com'},
        headers=headers,
    ).json()

    assert client.get('/api/students', headers=headers).json() == [created]

    client.delete(f"/api/students/{created['id']}", headers=headers)

    assert client.get('/api/students', headers=headers).json() == []


class _BrokenSession:
    def __init__(self) -> None:
        self.rolled_back = False

    def _fail(self, *args, **kwargs):
        raise OperationalError('SELECT * FROM students', {}, Exception('disk I/O error'))

    query = add = delete = commit = _fail

    def rollback(self) -> None:
        self.rolled_back = True


def test_list_students_hides_database_failure_details() -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_students(current_user=SimpleNamespace(id='user-1'), db=_BrokenSession())

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error'


def test_get_student_hides_database_failure_details() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_student('student-1', current_user=SimpleNamespace(id='user-1'), db=_BrokenSession())

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error'


def test_create_student_rolls_back_on_database_failure() -> None:
    broken = _BrokenSession()
    data = StudentCreateRequest(full_name='Jane Doe', student_id='S1', email='jane@x.com')

    with pytest.raises(HTTPException) as exception_info:
        create_student(data, current_user=SimpleNamespace(id='user-1'), db=broken)

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error'
    assert broken.rolled_back


def test_update_student_rolls_back_on_database_failure() -> None:
    broken = _BrokenSession()

    with pytest.raises(HTTPException) as exception_info:
        update_student('student-1', StudentUpdateRequest(grade='A'), current_user=SimpleNamespace(id='user-1'), db=broken)

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error'
    assert broken.rolled_back


def test_delete_student_rolls_back_on_database_failure() -> None:
    broken = _BrokenSession()

    with pytest.raises(HTTPException) as exception_info:
        delete_student('student-1', current_user=SimpleNamespace(id='user-1'), db=broken)

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error'
    assert broken.rolled_back


def test_failed_delete_commit_keeps_the_record(client, db, owner, monkeypatch) -> None:
    created = _create_student(client, owner['token'])

    def failing_commit(self) -> None:
        raise OperationalError('DELETE FROM students', {}, Exception('database is locked'))

    monkeypatch.setattr(OrmSession, 'commit', failing_commit)
    response = client.delete(f"/api/students/{created['id']}", headers=_auth_headers(owner['token']))
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {'detail': 'Server error'}
    assert db.query(Student).filter(Student.id == created['id']).count() == 1
