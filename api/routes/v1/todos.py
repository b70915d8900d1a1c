"""
api/routes/v1/todos.py -- Todo item CRUD endpoints.

Routes:
  GET    /api/v1/todos          -- list items (public)
  GET    /api/v1/todos/{id}     -- one item (public)
  POST   /api/v1/todos          -- create; id assigned by the store (requires auth)
  PUT    /api/v1/todos/{id}     -- full replacement; path id wins (requires auth)
  DELETE /api/v1/todos/{id}     -- delete (requires auth)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import TodoCreate, TodoResponse
from auth.dependencies import enforce, get_claims
from auth.models import Claims
from auth.policy import Action
from todo.store import TodoStore

router = APIRouter()

_NOT_FOUND = {"code": "not_found", "message": "Todo item not found."}


def _todos(request: Request) -> TodoStore:
    return request.app.state.store.todos


@router.get("/todos", response_model=list[TodoResponse])
async def list_todos(request: Request) -> list[TodoResponse]:
    return [TodoResponse.from_item(t) for t in _todos(request).list_todos()]


@router.get("/todos/{item_id}", response_model=TodoResponse)
async def get_todo(request: Request, item_id: int) -> TodoResponse:
    item = _todos(request).get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return TodoResponse.from_item(item)


@router.post("/todos", response_model=TodoResponse, status_code=201)
async def create_todo(
    request: Request,
    body: TodoCreate,
    claims: Claims = Depends(get_claims),
) -> TodoResponse:
    enforce(request, claims, Action.WRITE_RESOURCE)
    item = _todos(request).create(body.to_item())
    return TodoResponse.from_item(item)


@router.put("/todos/{item_id}", response_model=TodoResponse)
async def replace_todo(
    request: Request,
    item_id: int,
    body: TodoCreate,
    claims: Claims = Depends(get_claims),
) -> TodoResponse:
    """Replace an item wholesale. update() is True on success, False when the id is unknown."""
    enforce(request, claims, Action.WRITE_RESOURCE)
    item = body.to_item(item_id)
    if not _todos(request).update(item):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return TodoResponse.from_item(item)


@router.delete("/todos/{item_id}", status_code=204)
async def delete_todo(
    request: Request,
    item_id: int,
    claims: Claims = Depends(get_claims),
) -> Response:
    enforce(request, claims, Action.WRITE_RESOURCE)
    todos = _todos(request)
    item = todos.get(item_id)
    if item is None or not todos.delete(item):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return Response(status_code=204)
