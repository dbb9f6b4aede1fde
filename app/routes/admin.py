"""
Admin API routes for managing the frame's images and configuration.
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from typing import List
import logging

from app.config import settings
from app.dependencies import get_config_store, get_file_store, get_image_repository
from app.errors import CorruptRecordError, ImageIOError, NotFoundError, ValidationFailedError
from app.schemas import ConfigRef, DeleteImageResponse, ImageRef, ImageReorderRequest
from app.services.config_store import ConfigurationStore
from app.services.image_files import ImageFileStore
from app.services.image_repository import ImageRepository
from app.utils.image_inspector import describe_image, get_image_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/api", tags=["Admin"])


@router.get("/image", response_model=List[ImageRef])
async def get_images(
    images: ImageRepository = Depends(get_image_repository)
):
    """
    Get all images in display order.

    Returns:
        List[ImageRef]: Images with id, path, type and metadata

    Raises:
        HTTPException: 500 if the store cannot be read
    """
    try:
        loaded = await images.list_images()
        logger.info(f"Retrieved {len(loaded)} images for admin")
        return [ImageRef.model_validate(img, from_attributes=True) for img in loaded]

    except Exception as e:
        logger.error(f"Error fetching images: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to retrieve images", "detail": str(e)}
        )


async def _reorder(images: ImageRepository, image_ids: List[int]) -> None:
    try:
        await images.reorder_images(image_ids)
    except ValidationFailedError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid image order", "detail": str(e)}
        )
    except Exception as e:
        logger.error(f"Error reordering images: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to reorder images", "detail": str(e)}
        )


@router.put("/image", response_model=List[ImageRef])
async def update_image_order(
    new_order: List[ImageRef],
    images: ImageRepository = Depends(get_image_repository)
):
    """
    Reorder images.

    The frontend sends the full image list in the desired display order.
    Only the ids are used; they must cover every registered image exactly once.

    Returns:
        List[ImageRef]: Images in their new order

    Raises:
        HTTPException: 400 if the list is not a permutation of all images, 500 if the update fails
    """
    await _reorder(images, [image.id for image in new_order])
    return await get_images(images)


@router.put("/image/order")
async def reorder_images_by_id(
    request: ImageReorderRequest,
    images: ImageRepository = Depends(get_image_repository)
):
    """
    Reorder images by id.

    Returns:
        dict: Success message with count of reordered images
    """
    await _reorder(images, request.image_ids)
    return {
        "message": f"Successfully reordered {len(request.image_ids)} images",
        "count": len(request.image_ids)
    }


@router.post("/image", response_model=ImageRef)
async def add_image(
    image: UploadFile = File(...),
    images: ImageRepository = Depends(get_image_repository),
    files: ImageFileStore = Depends(get_file_store)
):
    """
    Upload an image and append it to the display order.

    The file is stored in the image directory as is; its format and size
    become the image's metadata.

    Raises:
        HTTPException: 400 if the file is empty, too large or not an image; 500 if storing fails
    """
    content = await image.read()
    filename = image.filename or ""

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Empty file", "detail": f"File '{filename}' has no content"}
        )
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "File too large",
                "detail": f"File '{filename}' exceeds {settings.MAX_UPLOAD_BYTES:,} bytes"
            }
        )

    info = get_image_info(content)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid file type", "detail": f"File '{filename}' is not a valid image file"}
        )

    try:
        stored_name = await files.save(content, filename)
    except ImageIOError as e:
        logger.error(f"Error storing uploaded file {filename}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to store image file", "detail": str(e)}
        )

    try:
        saved = await images.save_image(stored_name, metadata=describe_image(info))
    except Exception as e:
        logger.error(f"Error saving image metadata for {stored_name}: {str(e)}", exc_info=True)
        try:
            await files.remove(stored_name)
        except ImageIOError as cleanup_error:
            logger.error(f"Could not clean up orphaned file {stored_name}: {str(cleanup_error)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to save image", "detail": str(e)}
        )

    logger.info(f"Successfully uploaded image: ID {saved.id}, path={saved.path}")
    return ImageRef.model_validate(saved, from_attributes=True)


@router.delete("/image/{image_id}", response_model=DeleteImageResponse)
async def delete_image(
    image_id: int,
    images: ImageRepository = Depends(get_image_repository)
):
    """
    Delete an image, its position in the display order and its file.

    Raises:
        HTTPException: 404 if image not found, 500 if the file cannot be removed
    """
    try:
        await images.delete_image(image_id)
        return DeleteImageResponse(message="Image deleted successfully", image_id=image_id)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Image not found", "detail": f"Image ID {image_id} does not exist"}
        )
    except ImageIOError as e:
        logger.error(f"Failed to remove file for image ID {image_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to delete image file", "detail": str(e)}
        )
    except Exception as e:
        logger.error(f"Error deleting image: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to delete image", "detail": str(e)}
        )


@router.get("/configuration", response_model=ConfigRef, response_model_by_alias=True)
async def get_configuration(
    config_store: ConfigurationStore = Depends(get_config_store)
):
    """Get the display configuration."""
    try:
        return ConfigRef.from_config(await config_store.get_config())

    except CorruptRecordError as e:
        logger.error(f"Configuration record is corrupt: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Configuration is corrupt", "detail": str(e)}
        )


@router.put("/configuration", response_model=ConfigRef, response_model_by_alias=True)
async def update_configuration(
    new_config: ConfigRef,
    config_store: ConfigurationStore = Depends(get_config_store)
):
    """
    Update the display configuration.
    Negative durations are rejected by the request schema (400).

    Returns:
        ConfigRef: Stored configuration
    """
    try:
        await config_store.update_config(new_config.to_config())
    except Exception as e:
        logger.error(f"Error updating configuration: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to update configuration", "detail": str(e)}
        )
    return await get_configuration(config_store)
