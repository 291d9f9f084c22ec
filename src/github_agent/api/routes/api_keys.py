"""
API key management for the /api/v1 surface.

The plaintext key is returned once, when it is created. Only its SHA-256
hash and a short display prefix are stored.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from github_agent.api.schemas import ApiKeyCreate, ApiKeyResponse, dump
from github_agent.db.connection import get_db
from github_agent.db.repositories import ApiKeyRepository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_api_keys(session: Session = Depends(get_db)) -> dict[str, Any]:
    keys = ApiKeyRepository(session).list_keys()
    return {"success": True, "data": [dump(ApiKeyResponse, key) for key in keys]}


@router.post("", status_code=201)
def create_api_key(
    request: ApiKeyCreate, session: Session = Depends(get_db)
) -> dict[str, Any]:
    row, full_key = ApiKeyRepository(session).issue(request.name)
    logger.info("Issued API key %s (%s)", row.key_prefix, row.name)
    return {
        "success": True,
        "message": "API key created. Store it now; it will not be shown again.",
        "data": {**dump(ApiKeyResponse, row), "key": full_key},
    }


@router.delete("/{key_id}")
def revoke_api_key(key_id: str, session: Session = Depends(get_db)) -> dict[str, Any]:
    keys = ApiKeyRepository(session)
    row = keys.get(key_id)
    if row is None:
        raise HTTPException(status_code=404, detail="API key not found")
    keys.revoke(row)
    logger.info("Revoked API key %s", row.key_prefix)
    return {"success": True, "message": "API key revoked"}
