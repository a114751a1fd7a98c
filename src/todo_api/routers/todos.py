from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from ..access import AccessPolicy, Operation
from ..db import get_session
from ..repositories import SORTABLE_FIELDS, ListQuery, TodoRepository, parse_sort
from ..schemas import TodoCreate, TodoOut, TodoUpdate

# Largest value a signed 64-bit INTEGER primary key can hold
MAX_TODO_ID = 2**63 - 1


def _get_repo(session: Session = Depends(get_session)) -> TodoRepository:
    """
    Dependency building a repository over the request-scoped session.
    """
    return TodoRepository(session)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")


# PUBLIC_INTERFACE
def create_todo(payload: TodoCreate, repo: TodoRepository = Depends(_get_repo)) -> TodoOut:
    """
    Create a new Todo.
    """
    created = repo.create(payload)
    return TodoOut.model_validate(created)


# PUBLIC_INTERFACE
def list_todos(
    limit: Optional[int] = Query(None, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    q: Optional[str] = Query(None, description="Search text for title/description"),
    sort: str = Query("id", description=f"Sort by field: {', '.join(SORTABLE_FIELDS)}; prefix '-' for descending"),
    repo: TodoRepository = Depends(_get_repo),
) -> List[TodoOut]:
    """
    List todos. Without query parameters every todo is returned, ordered by id.
    """
    try:
        sort_field, descending = parse_sort(sort)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    query = ListQuery(
        limit=limit,
        offset=offset,
        completed=completed,
        search=q.strip() if q and q.strip() else None,
        sort_field=sort_field,
        descending=descending,
    )
    return [TodoOut.model_validate(t) for t in repo.list(query)]


# PUBLIC_INTERFACE
def get_todo(
    todo_id: int = Path(..., ge=1, le=MAX_TODO_ID, description="Todo identifier"),
    repo: TodoRepository = Depends(_get_repo),
) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    item = repo.get(todo_id)
    if item is None:
        raise _not_found()
    return TodoOut.model_validate(item)


# PUBLIC_INTERFACE
def put_todo(
    payload: TodoCreate,
    todo_id: int = Path(..., ge=1, le=MAX_TODO_ID, description="Todo identifier"),
    repo: TodoRepository = Depends(_get_repo),
) -> TodoOut:
    """
    Full update: every writable field is replaced, omitted optional fields
    fall back to their create defaults.
    """
    update = TodoUpdate(
        title=payload.title,
        description=payload.description,
        completed=payload.completed,
    )
    updated = repo.update(todo_id, update)
    if updated is None:
        raise _not_found()
    return TodoOut.model_validate(updated)


# PUBLIC_INTERFACE
def patch_todo(
    payload: TodoUpdate,
    todo_id: int = Path(..., ge=1, le=MAX_TODO_ID, description="Todo identifier"),
    repo: TodoRepository = Depends(_get_repo),
) -> TodoOut:
    """
    Partial update of a Todo item.
    """
    updated = repo.update(todo_id, payload)
    if updated is None:
        raise _not_found()
    return TodoOut.model_validate(updated)


# PUBLIC_INTERFACE
def delete_todo(
    todo_id: int = Path(..., ge=1, le=MAX_TODO_ID, description="Todo identifier"),
    repo: TodoRepository = Depends(_get_repo),
) -> None:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    if not repo.delete(todo_id):
        raise _not_found()
    return None


@dataclass(frozen=True)
class TodoRoute:
    """One row of the route table: which operation a method/path serves."""

    operation: Operation
    method: str
    path: str
    endpoint: Callable[..., Any]
    options: Dict[str, Any] = field(default_factory=dict)


ROUTE_TABLE: List[TodoRoute] = [
    TodoRoute(
        Operation.CREATE,
        "POST",
        "",
        create_todo,
        dict(
            response_model=TodoOut,
            status_code=status.HTTP_201_CREATED,
            summary="Create Todo",
            description="Create a new Todo item and return the created resource.",
            responses={
                201: {"description": "Todo created successfully"},
                400: {"description": "Validation error"},
            },
        ),
    ),
    TodoRoute(
        Operation.READ,
        "GET",
        "",
        list_todos,
        dict(
            response_model=List[TodoOut],
            summary="List Todos",
            description=(
                "List todos as a JSON array.\n\n"
                "Query parameters:\n"
                "- limit: max number of items to return (0..1000)\n"
                "- offset: number of items to skip (>=0)\n"
                "- completed: filter by completion status\n"
                "- q: search query for title/description (case-insensitive substring match)\n"
                "- sort: id, title, created_at or updated_at, '-' prefix for descending"
            ),
            responses={
                200: {"description": "List retrieved successfully"},
                400: {"description": "Invalid query parameters"},
            },
        ),
    ),
    TodoRoute(
        Operation.READ,
        "GET",
        "/{todo_id}",
        get_todo,
        dict(
            response_model=TodoOut,
            summary="Get Todo",
            description="Get a single Todo item by ID.",
            responses={
                200: {"description": "Todo found"},
                404: {"description": "Todo not found"},
            },
        ),
    ),
    TodoRoute(
        Operation.UPDATE,
        "PUT",
        "/{todo_id}",
        put_todo,
        dict(
            response_model=TodoOut,
            summary="Replace Todo",
            description="Replace an existing Todo item. Omitted optional fields are reset to their defaults.",
            responses={
                200: {"description": "Todo updated"},
                400: {"description": "Validation error"},
                404: {"description": "Todo not found"},
            },
        ),
    ),
    TodoRoute(
        Operation.UPDATE,
        "PATCH",
        "/{todo_id}",
        patch_todo,
        dict(
            response_model=TodoOut,
            summary="Update Todo",
            description="Partially update fields of a Todo item.",
            responses={
                200: {"description": "Todo updated"},
                400: {"description": "Validation error"},
                404: {"description": "Todo not found"},
            },
        ),
    ),
    TodoRoute(
        Operation.DELETE,
        "DELETE",
        "/{todo_id}",
        delete_todo,
        dict(
            status_code=status.HTTP_204_NO_CONTENT,
            summary="Delete Todo",
            description="Delete a Todo item by ID.",
            responses={
                204: {"description": "Todo deleted"},
                404: {"description": "Todo not found"},
            },
        ),
    ),
]


# PUBLIC_INTERFACE
def build_router(prefix: str = "/api", access: Optional[AccessPolicy] = None) -> APIRouter:
    """
    Build the todos router from ROUTE_TABLE, mounting only the routes whose
    operation the access policy allows.
    """
    policy = access or AccessPolicy()
    router = APIRouter(prefix=f"{prefix}/todos", tags=["todos"])
    for route in ROUTE_TABLE:
        if not policy.allows(route.operation):
            continue
        router.add_api_route(route.path, route.endpoint, methods=[route.method], **route.options)
    return router
