from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from app.api.download.service import normalize_category
from app.api.preset.service import PresetContentService
from app.common.http_response_model import CommonResponse

router = APIRouter()


@router.get("", name="Get presets of every category")
async def get_all_presets(response: Response):
    try:
        presets_by_category = await PresetContentService().get_all_presets()
        payload = CommonResponse(
            message="Successfully fetched presets",
            success=True,
            payload={
                category: [preset.dict() for preset in presets]
                for category, presets in presets_by_category.items()
            },
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/{category}", name="Get presets of a category")
async def get_category_presets(response: Response, category: str):
    try:
        presets = await PresetContentService().get_category_presets(category)
        payload = CommonResponse(
            message="Successfully fetched presets",
            success=True,
            payload=[preset.dict() for preset in presets],
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/{category}/{preset_key}", name="Get preset metadata")
async def get_preset(response: Response, category: str, preset_key: str):
    try:
        preset = await PresetContentService().get_preset_metadata(
            normalize_category(category), preset_key
        )
        if preset is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Preset not found"
            )

        payload = CommonResponse(
            message="Successfully fetched preset",
            success=True,
            payload=preset.dict(),
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload
