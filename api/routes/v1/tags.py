"""
api/routes/v1/tags.py -- Tag management routes.

Routes:
  POST   /tags            -- create tag (409 if the name is taken)
  GET    /tags            -- list all tags
  GET    /tags/{tag_id}   -- tag detail
  PATCH  /tags/{tag_id}   -- partial update
  DELETE /tags/{tag_id}   -- delete tag

Every route requires a valid access token.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import TagCreate, TagResponse, TagUpdate
from auth.dependencies import get_current_user
from auth.errors import ApiResponseCode
from tags.models import Tag
from tags.store import TagStore

# Router-level dependency applies to every route registered on this router.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": ApiResponseCode.NOT_FOUND.value, "msg": "Tag not found."},
    )


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": ApiResponseCode.CONFLICT.value, "msg": "A tag with that name already exists."},
    )


@router.post("/tags", response_model=TagResponse, status_code=201)
def create_tag(request: Request, body: TagCreate) -> TagResponse:
    store: TagStore = request.app.state.tag_store
    try:
        tag_id = store.create_tag(Tag(tag_name=body.tag_name, icon=body.icon or ""))
    except IntegrityError as exc:
        raise _conflict() from exc
    return TagResponse.from_tag(store.get_tag(tag_id))


@router.get("/tags", response_model=list[TagResponse])
def list_tags(request: Request) -> list[TagResponse]:
    store: TagStore = request.app.state.tag_store
    return [TagResponse.from_tag(t) for t in store.list_tags()]


@router.get("/tags/{tag_id}", response_model=TagResponse)
def get_tag(request: Request, tag_id: int) -> TagResponse:
    store: TagStore = request.app.state.tag_store
    tag = store.get_tag(tag_id)
    if tag is None:
        raise _not_found()
    return TagResponse.from_tag(tag)


@router.patch("/tags/{tag_id}", response_model=TagResponse)
def update_tag(request: Request, tag_id: int, body: TagUpdate) -> TagResponse:
    """Update tagName and/or icon. Fields left out of the body, or sent as null, are unchanged."""
    store: TagStore = request.app.state.tag_store
    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if not fields:
        raise HTTPException(
            status_code=400,
            detail={"code": ApiResponseCode.VALIDATION_ERROR.value, "msg": "No fields to update."},
        )
    try:
        updated = store.update_tag(tag_id, **fields)
    except IntegrityError as exc:
        raise _conflict() from exc
    if not updated:
        raise _not_found()
    return TagResponse.from_tag(store.get_tag(tag_id))


@router.delete("/tags/{tag_id}", status_code=204)
def delete_tag(request: Request, tag_id: int) -> Response:
    store: TagStore = request.app.state.tag_store
    if not store.delete_tag(tag_id):
        raise _not_found()
    return Response(status_code=204)
