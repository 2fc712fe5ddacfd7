"""Tag API Routes"""

from typing import List

from fastapi import APIRouter, Depends, status

from versablog.api.dependencies import get_tag_service
from versablog.models import TagCreate, TagResponse, TagUpdate, TagWithCount
from versablog.services import TagService

router = APIRouter()


@router.get("", response_model=List[TagWithCount])
async def list_tags(
    service: TagService = Depends(get_tag_service),
) -> List[TagWithCount]:
    """List tags by name with the number of posts using each."""
    return [
        TagWithCount.model_validate(tag).model_copy(update={"post_count": count})
        for tag, count in await service.list_with_counts()
    ]


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    return TagResponse.model_validate(await service.create(data))


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: int,
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    return TagResponse.model_validate(await service.get(tag_id))


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: int,
    data: TagUpdate,
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    return TagResponse.model_validate(await service.update(tag_id, data))


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: int,
    service: TagService = Depends(get_tag_service),
) -> None:
    """Delete a tag and remove it from every post."""
    await service.delete(tag_id)
