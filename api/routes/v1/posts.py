"""
api/routes/v1/posts.py -- Post REST endpoints, scoped to the caller.

Routes:
  GET    /posts         -- the caller's posts, oldest first
  POST   /posts         -- create a post owned by the caller; 201
  GET    /posts/{id}    -- one of the caller's posts; 404 otherwise
  DELETE /posts/{id}    -- delete one of the caller's posts; 204

All routes sit behind AuthorizationFilter; get_current_principal() hands the
verified principal to PostService, which resolves it to the owning user id.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import PostCreate, PostResponse
from auth.dependencies import get_current_principal
from auth.models import Principal
from blog.service import PostService

router = APIRouter()


def _service(request: Request) -> PostService:
    return request.app.state.post_service


@router.get("/posts", response_model=list[PostResponse])
def list_posts(
    principal: Principal = Depends(get_current_principal),
    service: PostService = Depends(_service),
) -> list[PostResponse]:
    return [PostResponse.from_post(p) for p in service.list_posts(principal)]


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    body: PostCreate,
    principal: Principal = Depends(get_current_principal),
    service: PostService = Depends(_service),
) -> PostResponse:
    """Create a post. The owner is always the caller; the body cannot name one."""
    post = service.create_post(principal, body.title, body.body)
    return PostResponse.from_post(post)


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(
    post_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PostService = Depends(_service),
) -> PostResponse:
    return PostResponse.from_post(service.get_post(principal, post_id))


@router.delete("/posts/{post_id}", status_code=204)
def delete_post(
    post_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PostService = Depends(_service),
) -> Response:
    service.delete_post(principal, post_id)
    return Response(status_code=204)
