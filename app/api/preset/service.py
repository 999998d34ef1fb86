import asyncio
from typing import Any, Dict, List, NamedTuple, Optional

from app.api.download.service import format_preset_name, normalize_category
from app.api.preset.filters import PresetFilters
from app.common.s3_content_client import S3ContentClient
from app.config import settings
from app.logger.logger import logger
from app.schemas import PresetRef

MANIFEST_NAME = "meta.json"
FULL_PRESET_FILE = "full_preset.zip"


class PresetMetadata(NamedTuple):
    id: str
    category: str
    preset_key: str
    name: str
    description: Optional[str]
    filters: PresetFilters
    credit_cost: int = 1

    def dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "preset_key": self.preset_key,
            "name": self.name,
            "description": self.description,
            "filters": self.filters.dict(),
            "credit_cost": self.credit_cost,
        }


def manifest_credit_cost(raw: Any) -> int:
    try:
        cost = int(raw)
    except (TypeError, ValueError):
        return 1
    return cost if cost > 0 else 1


def parse_manifest(
    category: str, preset_key: str, manifest: Dict[str, Any]
) -> Optional[PresetMetadata]:
    preset = manifest.get("preset") if isinstance(manifest, dict) else None
    if not isinstance(preset, dict):
        return None

    name = preset.get("preset_name") or preset.get("name") or preset.get("title")
    return PresetMetadata(
        id=preset.get("id") or f"{category}_{preset_key}",
        category=category,
        preset_key=preset_key,
        name=name or format_preset_name(preset_key),
        description=preset.get("description"),
        filters=PresetFilters.from_raw(preset.get("filters")),
        credit_cost=manifest_credit_cost(preset.get("credit_cost")),
    )


def preset_file_key(preset: PresetRef) -> str:
    return f"{normalize_category(preset.category)}/{preset.preset_key.replace(' ', '_')}/{FULL_PRESET_FILE}"


class PresetContentService:
    """Read-only view of the preset bucket (folder per preset, meta.json manifest)."""

    def __init__(self, client: Optional[S3ContentClient] = None) -> None:
        self.client = client or S3ContentClient()

    async def list_preset_keys(self, category: str) -> List[str]:
        prefix = f"{category}/"
        try:
            folders = await asyncio.to_thread(self.client.list_folders, prefix)
        except Exception as e:
            logger.error(f"[PresetContent] Failed to list {prefix}: {e}")
            return []
        return [folder[len(prefix):].rstrip("/") for folder in folders]

    async def get_preset_metadata(
        self, category: str, preset_key: str
    ) -> Optional[PresetMetadata]:
        manifest = await asyncio.to_thread(
            self.client.read_json, f"{category}/{preset_key}/{MANIFEST_NAME}"
        )
        if manifest is None:
            return None
        return parse_manifest(category, preset_key, manifest)

    async def get_category_presets(self, category: str) -> List[PresetMetadata]:
        category = normalize_category(category)
        preset_keys = await self.list_preset_keys(category)
        presets = await asyncio.gather(
            *(self.get_preset_metadata(category, key) for key in preset_keys)
        )
        return [preset for preset in presets if preset is not None]

    async def get_all_presets(
        self, categories: Optional[List[str]] = None
    ) -> Dict[str, List[PresetMetadata]]:
        categories = categories or settings.PRESET_CATEGORIES
        results = await asyncio.gather(
            *(self.get_category_presets(category) for category in categories)
        )
        return dict(zip(categories, results))

    async def get_download_url(self, preset: PresetRef) -> Dict[str, str]:
        key = preset_file_key(preset)
        url = await asyncio.to_thread(self.client.generate_download_url, key)
        return {"key": key, "url": url}
