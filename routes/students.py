# routes/students.py
from fastapi import APIRouter, Body, Depends, Request
from typing import Any, Dict, Optional
import logging

from database import get_students_collection
from services.student_service import StudentQueryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/etudiants", tags=["etudiants"])


def get_student_service(collection=Depends(get_students_collection)) -> StudentQueryService:
    return StudentQueryService(collection)


def raw_query(request: Request) -> Dict[str, Any]:
    """Query string as sent; a repeated key maps to the list of its values."""
    values: Dict[str, list] = {}
    for key, value in request.query_params.multi_items():
        values.setdefault(key, []).append(value)
    return {key: items[0] if len(items) == 1 else items for key, items in values.items()}


# Static paths first so "search" and "filiere" are never read as an {id}

@router.get("/search/advanced")
async def advanced_search(request: Request, service: StudentQueryService = Depends(get_student_service)):
    params = raw_query(request)
    logger.info(f"Advanced search with filters={params}")
    result = await service.advanced_search(params)
    return {"success": True, **result}


@router.get("/filiere/{filiere}")
async def get_etudiants_by_filiere(filiere: str, service: StudentQueryService = Depends(get_student_service)):
    result = await service.search_by_filiere(filiere)
    return {"success": True, **result}


@router.post("", status_code=201)
async def create_etudiant(
    data: Dict[str, Any] = Body(...),
    service: StudentQueryService = Depends(get_student_service),
):
    etudiant = await service.create(data)
    return {"success": True, "message": "Étudiant créé avec succès", "data": etudiant}


@router.get("")
async def get_all_etudiants(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None,
    fields: Optional[str] = None,
    service: StudentQueryService = Depends(get_student_service),
):
    logger.info(f"Listing students page={page}, limit={limit}, sort={sort}, fields={fields}")
    result = await service.list_page(page=page, limit=limit, sort=sort, fields=fields)
    return {"success": True, **result}


@router.get("/{id}")
async def get_etudiant_by_id(id: str, service: StudentQueryService = Depends(get_student_service)):
    etudiant = await service.get_by_id(id)
    return {"success": True, "data": etudiant}


@router.put("/{id}")
async def update_etudiant(
    id: str,
    data: Dict[str, Any] = Body(...),
    service: StudentQueryService = Depends(get_student_service),
):
    etudiant = await service.update(id, data)
    return {"success": True, "message": "Étudiant mis à jour avec succès", "data": etudiant}


@router.delete("/{id}")
async def delete_etudiant(id: str, service: StudentQueryService = Depends(get_student_service)):
    await service.delete(id)
    return {"success": True, "message": "Étudiant supprimé avec succès"}
