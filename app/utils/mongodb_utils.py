# app/utils/mongodb_utils.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict

from bson import ObjectId
from pydantic import HttpUrl


def _convert_value(value: Any) -> Any:
    if isinstance(value, (HttpUrl, ObjectId)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        # MongoDB supporte datetime tel quel
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, dict):
        return convert_for_mongodb(value)
    if isinstance(value, (list, tuple, set)):
        return [_convert_value(item) for item in value]
    return value


def convert_for_mongodb(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convertit un dictionnaire (métadonnées libres, model_dump Pydantic) en document
    compatible BSON.

    Args:
        data: Dictionnaire contenant les données à convertir

    Returns:
        Dictionnaire avec les types convertis pour MongoDB
    """
    return {str(key): _convert_value(value) for key, value in data.items()}


def convert_mongodb_result(result: Dict[str, Any]) -> Dict[str, Any]:
    """Convertit _id en string pour pouvoir renvoyer le document en JSON"""
    if not result:
        return result
    if "_id" in result:
        result["_id"] = str(result["_id"])
    return result
