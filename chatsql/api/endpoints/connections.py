from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException

from chatsql import schemas
from chatsql.api import deps
from chatsql.core.exceptions import (
    ConnectionInUseError, NotFoundError, PersistenceError, ValidationError
)
from chatsql.services.connection_registry import ConnectionRegistry

router = APIRouter()


def _raise_http(e: Exception) -> None:
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=e.message)
    if isinstance(e, ConnectionInUseError):
        raise HTTPException(status_code=409, detail=e.message)
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=400, detail=e.message)
    if isinstance(e, PersistenceError):
        raise HTTPException(status_code=503, detail=e.message)
    raise e


@router.get("/", response_model=List[schemas.DBConnection])
def read_connections(
    registry: ConnectionRegistry = Depends(deps.get_registry),
) -> Any:
    """
    Retrieve all database connections.
    """
    try:
        return registry.list()
    except PersistenceError as e:
        _raise_http(e)


@router.post("/", response_model=schemas.DBConnection)
def create_connection(
    *,
    registry: ConnectionRegistry = Depends(deps.get_registry),
    connection_in: schemas.DBConnectionCreate,
) -> Any:
    """
    Create new database connection.
    """
    try:
        connection_id = registry.create(connection_in)
        return registry.get(connection_id)
    except (ValidationError, NotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.get("/{connection_id}", response_model=schemas.DBConnection)
def read_connection(
    *,
    registry: ConnectionRegistry = Depends(deps.get_registry),
    connection_id: str,
) -> Any:
    """
    Get connection by ID.
    """
    try:
        return registry.get(connection_id)
    except (NotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.put("/{connection_id}", response_model=schemas.DBConnection)
def update_connection(
    *,
    registry: ConnectionRegistry = Depends(deps.get_registry),
    connection_id: str,
    connection_in: schemas.DBConnectionUpdate,
) -> Any:
    """
    Update a connection.
    """
    try:
        return registry.update(connection_id, connection_in)
    except (ValidationError, NotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.delete("/{connection_id}")
def delete_connection(
    *,
    registry: ConnectionRegistry = Depends(deps.get_registry),
    connection_id: str,
    cascade: bool = False,
) -> Any:
    """
    Delete a connection. Without cascade, a connection that still owns chat turns
    or examples is refused with 409.
    """
    try:
        registry.delete(connection_id, cascade=cascade)
    except (ValidationError, NotFoundError, PersistenceError) as e:
        _raise_http(e)
    return {"id": connection_id, "deleted": True}
