import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.core import validation
from backend.core.errors import InternalError, InvalidInput, NotFound
from backend.core.schemas import CamelModel
from backend.database import get_db
from backend.models.student import Student
from backend.models.user import User

router = APIRouter(tags=['students'], dependencies=[Depends(get_current_user)])

logger = logging.getLogger(__name__)

STUDENT_NOT_FOUND = 'Student not found'


class StudentCreateRequest(CamelModel):
    full_name: str | None = None
    student_id: str | None = None
    email: str | None = None
    grade: str | None = None
    enrollment_date: str | None = None


class StudentUpdateRequest(CamelModel):
    # None leaves a field untouched; '' clears grade or enrollment_date.
    full_name: str | None = None
    student_id: str | None = None
    email: str | None = None
    grade: str | None = None
    enrollment_date: str | None = None


class StudentResponse(CamelModel):
    id: str
    user_id: str
    full_name: str
    student_id: str
    email: str
    grade: str = ''
    enrollment_date: date | None = None
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str


def parse_enrollment_date_or_400(value: str | None) -> date | None:
    try:
        return validation.parse_enrollment_date(value)
    except ValueError as exc:
        raise InvalidInput(validation.INVALID_ENROLLMENT_DATE) from exc


def get_owned_student(db: Session, student_id: str, user_id: str) -> Student | None:
    return db.query(Student).filter(Student.id == student_id, Student.user_id == user_id).first()


@router.get('', response_model=list[StudentResponse])
def list_students(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return db.query(Student).filter(
            Student.user_id == current_user.id,
        ).order_by(Student.created_at.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Listing students failed for user %s', current_user.id)
        raise InternalError() from exc


@router.get('/{student_id}', response_model=StudentResponse)
def get_student(student_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        student = get_owned_student(db, student_id, current_user.id)
    except SQLAlchemyError as exc:
        logger.exception('Loading student %s failed', student_id)
        raise InternalError() from exc

    if student is None:
        raise NotFound(STUDENT_NOT_FOUND)
    return student


@router.post('', response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    data: StudentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    error = validation.validate_student_fields(data.full_name, data.student_id, data.email)
    if error:
        raise InvalidInput(error)

    enrollment_date = parse_enrollment_date_or_400(data.enrollment_date)

    try:
        student = Student(
            user_id=current_user.id,
            full_name=data.full_name.strip(),
            student_id=data.student_id.strip(),
            email=validation.normalize_email(data.email),
            grade=(data.grade or '').strip(),
            enrollment_date=enrollment_date,
        )
        db.add(student)
        db.commit()
        db.refresh(student)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Creating student failed for user %s', current_user.id)
        raise InternalError() from exc

    return student


@router.put('/{student_id}', response_model=StudentResponse)
def update_student(
    student_id: str,
    data: StudentUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        student = get_owned_student(db, student_id, current_user.id)
        if student is None:
            raise NotFound(STUDENT_NOT_FOUND)

        full_name = data.full_name if data.full_name is not None else student.full_name
        student_number = data.student_id if data.student_id is not None else student.student_id
        email = data.email if data.email is not None else student.email

        error = validation.validate_student_fields(full_name, student_number, email)
        if error:
            raise InvalidInput(error)

        if data.enrollment_date is not None:
            student.enrollment_date = parse_enrollment_date_or_400(data.enrollment_date)
        if data.grade is not None:
            student.grade = data.grade.strip()

        student.full_name = full_name.strip()
        student.student_id = student_number.strip()
        student.email = validation.normalize_email(email)

        db.commit()
        db.refresh(student)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Updating student %s failed', student_id)
        raise InternalError() from exc

    return student


@router.delete('/{student_id}', response_model=MessageResponse)
def delete_student(student_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        student = get_owned_student(db, student_id, current_user.id)
        if student is None:
            raise NotFound(STUDENT_NOT_FOUND)

        db.delete(student)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Deleting student %s failed', student_id)
        raise InternalError() from exc

    return MessageResponse(message='Student deleted')
