# services/queries.py
"""Builders for the MongoDB filters, sorts and projections used by the etudiants API.

Everything here is pure: raw request strings in, pymongo-ready structures out.
Numbers are read from their leading numeric part (``"2.5"`` -> 2, ``"14.5abc"`` -> 14.5).
"""
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from typing import Any, Dict, List, Mapping, Optional, Tuple
import math
import re

from errors import InvalidIdError, InvalidInputError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT = "nom"

INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise InvalidIdError()
    return ObjectId(value)


def int_prefix(value: Any) -> Optional[int]:
    match = INT_PREFIX.match(str(value)) if value is not None else None
    return int(match.group(0)) if match else None


def float_prefix(value: Any) -> Optional[float]:
    match = FLOAT_PREFIX.match(str(value)) if value is not None else None
    return float(match.group(0)) if match else None


def parse_positive_int(value: Optional[str], default: int) -> int:
    """Lenient paging parameter: anything missing, non-numeric or < 1 falls back to ``default``."""
    number = int_prefix(value)
    if number is None or number < 1:
        return default
    return number


def build_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    # "nom", "-moyenne", "filiere,-annee" or "filiere -annee"
    keys = [key for key in re.split(r"[,\s]+", sort or "") if key and key != "-"]
    if not keys:
        keys = [DEFAULT_SORT]
    return [(key[1:], DESCENDING) if key.startswith("-") else (key, ASCENDING) for key in keys]


def build_projection(fields: Optional[str]) -> Optional[Dict[str, int]]:
    """``"nom,prenom"`` keeps those fields, ``"-email"`` drops them.

    MongoDB cannot mix the two, except for ``-_id`` next to inclusions.
    """
    if not fields:
        return None
    names = [name.strip() for name in fields.split(",") if name.strip() not in ("", "-")]
    if not names:
        return None

    projection = {}
    for name in names:
        if name.startswith("-"):
            projection[name[1:]] = 0
        else:
            projection[name] = 1

    included = [name for name, flag in projection.items() if flag == 1]
    excluded = [name for name, flag in projection.items() if flag == 0 and name != "_id"]
    if included and excluded:
        raise InvalidInputError(error="fields ne peut pas mélanger inclusion et exclusion")
    return projection


def exact_match(value: str) -> Dict[str, str]:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def contains_match(value: str) -> Dict[str, str]:
    return {"$regex": re.escape(value), "$options": "i"}


def _single(value: Any) -> Any:
    # Repeated query parameters arrive as a list; the last one filters
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def _parse_int(name: str, value: str) -> int:
    number = int_prefix(value)
    if number is None:
        raise InvalidInputError(error=f"{name} doit être un entier")
    return number


def _parse_float(name: str, value: str) -> float:
    number = float_prefix(value)
    if number is None or not math.isfinite(number):
        raise InvalidInputError(error=f"{name} doit être un nombre")
    return number


def build_advanced_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    """AND-combined filter for GET /api/etudiants/search/advanced.

    Only active students are ever returned. ``nom`` is a case-insensitive
    substring, ``filiere`` a case-insensitive exact value, ``anneeMin`` /
    ``anneeMax`` and ``moyenneMin`` inclusive bounds.
    """
    query: Dict[str, Any] = {"actif": True}

    nom = _single(params.get("nom"))
    if nom:
        query["nom"] = contains_match(nom)

    filiere = _single(params.get("filiere"))
    if filiere:
        query["filiere"] = exact_match(filiere)

    annee_min = _single(params.get("anneeMin"))
    annee_max = _single(params.get("anneeMax"))
    if annee_min or annee_max:
        query["annee"] = {}
        if annee_min:
            query["annee"]["$gte"] = _parse_int("anneeMin", annee_min)
        if annee_max:
            query["annee"]["$lte"] = _parse_int("anneeMax", annee_max)

    moyenne_min = _single(params.get("moyenneMin"))
    if moyenne_min:
        query["moyenne"] = {"$gte": _parse_float("moyenneMin", moyenne_min)}

    return query
