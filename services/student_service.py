# services/student_service.py
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
import logging

from errors import (
    DuplicateEmailError,
    DuplicateNameError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UpdateError,
    format_errors,
)
from models.student import ALLOWED_UPDATE_FIELDS, StudentCreate, StudentUpdate
from services.queries import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    build_advanced_filter,
    build_projection,
    build_sort,
    exact_match,
    parse_object_id,
    parse_positive_int,
)

logger = logging.getLogger(__name__)

DUPLICATE_KEY_CODE = 11000


def serialize_student(document: Mapping[str, Any]) -> Dict[str, Any]:
    student = dict(document)
    if "_id" in student:
        student["_id"] = str(student["_id"])
    return student


def is_email_conflict(exc: DuplicateKeyError) -> bool:
    if exc.code != DUPLICATE_KEY_CODE:
        return False
    details = exc.details or {}
    keys = details.get("keyPattern") or details.get("keyValue")
    if keys is None:
        # Older servers only report the index name in the message
        return "email" in str(exc)
    return "email" in keys


def _now():
    return datetime.now(timezone.utc)


class StudentQueryService:
    """CRUD and search over the ``etudiants`` collection.

    Stateless: every method is one request against the injected collection
    (a motor ``AsyncIOMotorCollection`` in production). Failures are raised
    as ``errors.StudentError`` subclasses.
    """

    def __init__(self, collection):
        self.collection = collection

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            student = StudentCreate.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"Invalid student payload: {exc.errors()}")
            raise InvalidInputError(error=format_errors(exc.errors()))

        try:
            # Check-then-insert: two concurrent creates may both pass this lookup
            existing = await self.collection.find_one({"nom": student.nom, "prenom": student.prenom})
            if existing:
                logger.warning(f"Duplicate name rejected: {student.nom} {student.prenom}")
                raise DuplicateNameError()

            document = student.model_dump(exclude_none=True)
            document["createdAt"] = document["updatedAt"] = _now()
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as exc:
            if is_email_conflict(exc):
                logger.warning(f"Duplicate email rejected: {student.email}")
                raise DuplicateEmailError()
            raise InvalidInputError(error=str(exc))
        except PyMongoError as exc:
            logger.error(f"Failed to create student: {exc}")
            raise InvalidInputError(error=str(exc))

        document["_id"] = result.inserted_id
        logger.info(f"Student created: {result.inserted_id}")
        return serialize_student(document)

    async def list_page(
        self,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        sort: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> Dict[str, Any]:
        page_number = parse_positive_int(page, DEFAULT_PAGE)
        page_size = parse_positive_int(limit, DEFAULT_LIMIT)
        skip = (page_number - 1) * page_size

        try:
            cursor = (
                self.collection.find({}, build_projection(fields))
                .sort(build_sort(sort))
                .skip(skip)
                .limit(page_size)
            )
            students = await cursor.to_list(length=page_size)
            total = await self.collection.count_documents({})
        except PyMongoError as exc:
            logger.error(f"Failed to list students: {exc}")
            raise InternalError(error=str(exc))

        return {
            "page": page_number,
            "total": total,
            "count": len(students),
            "data": [serialize_student(s) for s in students],
        }

    async def get_by_id(self, student_id: str) -> Dict[str, Any]:
        object_id = parse_object_id(student_id)
        try:
            student = await self.collection.find_one({"_id": object_id})
        except PyMongoError as exc:
            logger.error(f"Failed to fetch student {student_id}: {exc}")
            raise InternalError(error=str(exc))
        if student is None:
            raise NotFoundError()
        return serialize_student(student)

    async def update(self, student_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        object_id = parse_object_id(student_id)

        updates = {field: data[field] for field in ALLOWED_UPDATE_FIELDS if field in data}
        try:
            updates = StudentUpdate.model_validate(updates).model_dump(exclude_unset=True)
        except ValidationError as exc:
            logger.warning(f"Invalid update for {student_id}: {exc.errors()}")
            raise UpdateError(error=format_errors(exc.errors()))

        try:
            if updates.get("nom") and updates.get("prenom"):
                duplicate = await self.collection.find_one({
                    "nom": updates["nom"],
                    "prenom": updates["prenom"],
                    "_id": {"$ne": object_id},
                })
                if duplicate:
                    raise DuplicateNameError("Un autre étudiant avec ce nom et prénom existe déjà")

            if updates:
                updates["updatedAt"] = _now()
                student = await self.collection.find_one_and_update(
                    {"_id": object_id},
                    {"$set": updates},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                student = await self.collection.find_one({"_id": object_id})
        except PyMongoError as exc:
            logger.error(f"Failed to update student {student_id}: {exc}")
            raise UpdateError(error=str(exc))

        if student is None:
            raise NotFoundError()
        logger.info(f"Student updated: {student_id} ({', '.join(updates) or 'no changes'})")
        return serialize_student(student)

    async def delete(self, student_id: str) -> None:
        object_id = parse_object_id(student_id)
        try:
            student = await self.collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as exc:
            logger.error(f"Failed to delete student {student_id}: {exc}")
            raise InternalError(error=str(exc))
        if student is None:
            raise NotFoundError()
        logger.info(f"Student deleted: {student_id}")

    async def search_by_filiere(self, filiere: str) -> Dict[str, Any]:
        try:
            students = await self.collection.find({"filiere": exact_match(filiere)}).to_list(None)
        except PyMongoError as exc:
            logger.error(f"Failed to search filiere {filiere}: {exc}")
            raise InternalError(error=str(exc))
        return {
            "count": len(students),
            "filiere": filiere,
            "data": [serialize_student(s) for s in students],
        }

    async def advanced_search(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        query = build_advanced_filter(params)
        try:
            students = await self.collection.find(query).sort(build_sort("nom")).to_list(None)
        except PyMongoError as exc:
            logger.error(f"Advanced search failed for {dict(params)}: {exc}")
            raise InternalError(error=str(exc))
        return {
            "filters": dict(params),
            "count": len(students),
            "data": [serialize_student(s) for s in students],
        }
