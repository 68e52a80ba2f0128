"""
Unit tests for the filter / sort / projection builders.
"""

import re

import pytest
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from errors import InvalidIdError, InvalidInputError
from services.queries import (
    build_advanced_filter,
    build_projection,
    build_sort,
    contains_match,
    exact_match,
    parse_object_id,
    parse_positive_int,
)


# --- parse_object_id ---

def test_parse_object_id_valide():
    oid = ObjectId()
    assert parse_object_id(str(oid)) == oid


@pytest.mark.parametrize("value", ["not-an-id", "123", "", "zzzzzzzzzzzzzzzzzzzzzzzz"])
def test_parse_object_id_invalide(value):
    with pytest.raises(InvalidIdError):
        parse_object_id(value)


# --- parse_positive_int ---

@pytest.mark.parametrize("value,expected", [
    (None, 10),
    ("", 10),
    ("abc", 10),
    ("0", 10),
    ("-3", 10),
    ("5", 5),
    (" 7 ", 7),
    ("2.5", 2),
    ("3abc", 3),
    ("abc3", 10),
])
def test_parse_positive_int(value, expected):
    assert parse_positive_int(value, 10) == expected


# --- build_sort ---

def test_build_sort_defaut_nom_croissant():
    assert build_sort(None) == [("nom", ASCENDING)]
    assert build_sort("") == [("nom", ASCENDING)]


def test_build_sort_descendant_et_multiple():
    assert build_sort("-moyenne,nom") == [("moyenne", DESCENDING), ("nom", ASCENDING)]
    assert build_sort("filiere -annee") == [("filiere", ASCENDING), ("annee", DESCENDING)]


# --- build_projection ---

def test_build_projection_absente():
    assert build_projection(None) is None
    assert build_projection(" , ") is None


def test_build_projection_liste():
    assert build_projection("nom, prenom,email") == {"nom": 1, "prenom": 1, "email": 1}


def test_build_projection_exclusion():
    assert build_projection("-email") == {"email": 0}
    assert build_projection("-email,-moyenne") == {"email": 0, "moyenne": 0}


def test_build_projection_inclusion_sans_id():
    assert build_projection("nom,-_id") == {"nom": 1, "_id": 0}


def test_build_projection_melange_refuse():
    with pytest.raises(InvalidInputError):
        build_projection("nom,-email")


# --- regex helpers ---

def test_exact_match_ancre_et_insensible_casse():
    pattern = exact_match("Informatique")
    regex = re.compile(pattern["$regex"], re.IGNORECASE)
    assert pattern["$options"] == "i"
    assert regex.search("informatique")
    assert regex.search("INFORMATIQUE")
    assert not regex.search("Informatique2")
    assert not regex.search("Génie Informatique")


def test_exact_match_echappe_les_metacaracteres():
    regex = re.compile(exact_match("C++")["$regex"], re.IGNORECASE)
    assert regex.search("c++")
    assert not regex.search("ccc")


def test_contains_match_sous_chaine():
    regex = re.compile(contains_match("pon")["$regex"], re.IGNORECASE)
    assert regex.search("Dupont")
    assert regex.search("PONCET")


# --- build_advanced_filter ---

def test_advanced_filter_toujours_actif():
    assert build_advanced_filter({}) == {"actif": True}


def test_advanced_filter_complet():
    query = build_advanced_filter({
        "nom": "dup",
        "filiere": "Informatique",
        "anneeMin": "2",
        "anneeMax": "4",
        "moyenneMin": "14.5",
    })
    assert query["actif"] is True
    assert query["nom"] == contains_match("dup")
    assert query["filiere"] == exact_match("Informatique")
    assert query["annee"] == {"$gte": 2, "$lte": 4}
    assert query["moyenne"] == {"$gte": 14.5}


def test_advanced_filter_borne_unique():
    assert build_advanced_filter({"anneeMax": "3"})["annee"] == {"$lte": 3}
    assert build_advanced_filter({"anneeMin": "1"})["annee"] == {"$gte": 1}


def test_advanced_filter_parametres_vides_ignores():
    assert build_advanced_filter({"nom": "", "moyenneMin": ""}) == {"actif": True}


def test_advanced_filter_prefixe_numerique():
    query = build_advanced_filter({"anneeMin": "2.5", "anneeMax": "4ans", "moyenneMin": "14.5abc"})
    assert query["annee"] == {"$gte": 2, "$lte": 4}
    assert query["moyenne"] == {"$gte": 14.5}


def test_advanced_filter_parametre_repete():
    query = build_advanced_filter({"filiere": ["Physique", "Informatique"]})
    assert query["filiere"] == exact_match("Informatique")


@pytest.mark.parametrize("params", [
    {"anneeMin": "deux"},
    {"anneeMax": "a2"},
    {"moyenneMin": "bien"},
    {"moyenneMin": "nan"},
])
def test_advanced_filter_nombre_invalide(params):
    with pytest.raises(InvalidInputError):
        build_advanced_filter(params)
