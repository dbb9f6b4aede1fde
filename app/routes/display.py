"""
Display routes for the frame frontend.
Provides the endpoint the frame polls to learn which image to show.
"""
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from app.dependencies import get_rotation_selector
from app.errors import CorruptRecordError, NotFoundError
from app.schemas import CurrentImageResponse
from app.services.rotation import RotationSelector

logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


@router.get("/image/current", response_model=CurrentImageResponse)
async def get_current_image(
    selector: RotationSelector = Depends(get_rotation_selector)
):
    """
    Get the image the frame should display now.

    Advances to the next image in display order once the configured
    duration has elapsed since the last switch.

    Args:
        selector: Rotation selector (injected by FastAPI dependency)

    Returns:
        CurrentImageResponse: Path, type and metadata of the current image

    Raises:
        HTTPException: 404 if no image is registered, 500 if the rotation state is unreadable
    """
    try:
        image = await selector.current_image()
        logger.debug(f"Current image: ID {image.id}, path={image.path}")
        return CurrentImageResponse.model_validate(image, from_attributes=True)

    except NotFoundError as e:
        logger.warning(f"No image to display: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "No image to display", "detail": str(e)}
        )
    except CorruptRecordError as e:
        logger.error(f"Rotation state is corrupt: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Rotation state is corrupt", "detail": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to determine current image: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Failed to determine current image",
                "detail": str(e)
            }
        )
