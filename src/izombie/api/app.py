"""FastAPI application for sharing, browsing and moderating levels."""

from __future__ import annotations

import base64
from typing import Any, List, Mapping

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..decode import decode_bytes, decode_string, detect_file_format, detect_string_format
from ..encode import encode_to_string
from ..errors import LevelCodecError, PackingError
from ..logging_setup import configure_logging
from ..service import (
    LevelListing,
    LevelNotFoundError,
    LevelRejectedError,
    LevelService,
    LevelSort,
)
from ..storage import FileLevelStore
from ..thumbnail import extract_thumbnail
from ..validate import validate
from .settings import LevelApiSettings

_OCTET_STREAM = "application/octet-stream"


class Pagination(BaseModel):
    """Pagination metadata returned alongside list responses."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_items: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class LevelResource(BaseModel):
    """Listing metadata for a shared level."""

    id: int
    name: str
    author: str
    created_at: int
    sun: int
    is_water: bool
    version: int
    plays: int = 0
    favorites: int = 0
    reports: int = 0
    featured: bool = False
    featured_at: int | None = None
    thumbnail: List[List[Any]] | None = None


class LevelListResponse(BaseModel):
    """Paginated collection of shared levels."""

    data: List[LevelResource]
    pagination: Pagination


class DecodedLevelResponse(BaseModel):
    """Canonical view of a decoded payload for editor tooling."""

    format: int
    level: dict[Any, Any]
    is_water: bool
    valid: bool
    reason: str | None = None
    thumbnail: List[List[Any]]
    izl3: str | None = Field(
        default=None,
        description="The level re-encoded in the current string form, when possible.",
    )


class FavoriteResponse(BaseModel):
    """Result of toggling a favorite."""

    success: bool = True
    favorited: bool
    level: LevelResource


class LevelReportRequest(BaseModel):
    """Request payload for reporting a level."""

    reason: str | None = Field(
        default=None,
        description="Free-form explanation shown to moderators.",
    )


class LevelReportResponse(BaseModel):
    success: bool = True


class LevelUpdateRequest(BaseModel):
    """Request payload for editing a level's metadata."""

    name: str | None = None
    author: str | None = None
    sun: int | None = Field(default=None, ge=0)


def _build_level_resource(listing: LevelListing) -> LevelResource:
    return LevelResource(**listing.record.to_payload(), thumbnail=listing.thumbnail)


def _json_safe(value: Any) -> Any:
    """Return ``value`` with bytes as base64 text and every map key a string."""

    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def create_app(
    service: LevelService | None = None,
    *,
    settings: LevelApiSettings | None = None,
) -> FastAPI:
    """Create a FastAPI app exposing the level sharing endpoints."""

    resolved_settings = settings or LevelApiSettings.from_env()
    configure_logging(resolved_settings.log_level)

    levels = service
    if levels is None:
        store = FileLevelStore(
            resolved_settings.data_folder_path,
            create=resolved_settings.create_data_folder,
        )
        levels = LevelService(
            store, max_author_length=resolved_settings.max_author_length
        )

    app = FastAPI(
        title="I, Zombie Level API",
        version="0.1.0",
        description=(
            "HTTP API for sharing I, Zombie levels. Uploads are decoded and "
            "validated before they are stored; listings carry compact "
            "thumbnail rows for previews."
        ),
        openapi_tags=[
            {
                "name": "Levels",
                "description": "Upload, list, inspect and download shared levels.",
            },
            {
                "name": "Admin",
                "description": "Moderation: edit, feature and delete levels.",
            },
        ],
    )

    @app.post(
        "/api/levels",
        response_model=LevelResource,
        status_code=201,
        tags=["Levels"],
    )
    async def upload_level(
        request: Request,
        author: str | None = Query(None, description="Display name of the author."),
    ) -> LevelResource:
        content_type = request.headers.get("content-type", "")
        if _OCTET_STREAM not in content_type:
            raise HTTPException(
                status_code=415,
                detail="Only application/octet-stream uploads are supported.",
            )

        body = await request.body()
        try:
            record = await run_in_threadpool(levels.upload_level, body, author or "")
        except LevelRejectedError as exc:
            raise HTTPException(
                status_code=400, detail={"error": exc.error, "message": exc.message}
            ) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return LevelResource(**record.to_payload())

    @app.get(
        "/api/levels",
        response_model=LevelListResponse,
        tags=["Levels"],
    )
    def list_levels(
        page: int = Query(1, ge=1),
        page_size: int = Query(
            20,
            ge=1,
            le=100,
            description="Number of levels to return per page (maximum 100).",
        ),
        author: str | None = Query(
            None, description="Match any part of the author name."
        ),
        is_water: bool | None = Query(None),
        version: int | None = Query(None, ge=1),
        sort: LevelSort = Query(LevelSort.PLAYS),
        reversed_order: bool = Query(
            False, description="List in ascending instead of descending order."
        ),
    ) -> LevelListResponse:
        try:
            result = levels.list_levels(
                page=page,
                page_size=page_size,
                author=author,
                is_water=is_water,
                version=version,
                sort=sort,
                reversed_order=reversed_order,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return LevelListResponse(
            data=[_build_level_resource(listing) for listing in result.items],
            pagination=Pagination(
                page=result.page,
                page_size=result.page_size,
                total_items=result.total_items,
                total_pages=result.total_pages,
            ),
        )

    @app.post(
        "/api/levels/decode",
        response_model=DecodedLevelResponse,
        tags=["Levels"],
    )
    async def decode_level(request: Request) -> DecodedLevelResponse:
        body = await request.body()
        content_type = request.headers.get("content-type", "")
        try:
            if content_type.startswith("text/plain"):
                text = body.decode("utf-8").strip()
                level_format = detect_string_format(text)
                clone = decode_string(text)
            else:
                level_format = detect_file_format(body)
                clone = decode_bytes(body)
        except (LevelCodecError, UnicodeDecodeError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        ok, reason = validate(clone)
        try:
            converted: str | None = encode_to_string(clone)
        except PackingError:
            converted = None

        return DecodedLevelResponse(
            format=int(level_format),
            level=_json_safe(clone.to_payload()),
            is_water=clone.is_water,
            valid=ok,
            reason=reason,
            thumbnail=_json_safe(extract_thumbnail(clone)),
            izl3=converted,
        )

    @app.get(
        "/api/levels/{level_id}",
        response_model=LevelResource,
        tags=["Levels"],
    )
    def get_level(level_id: int) -> LevelResource:
        try:
            listing = levels.get_listing(level_id)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return _build_level_resource(listing)

    @app.get("/api/levels/{level_id}/download", tags=["Levels"])
    def download_level(level_id: int) -> Response:
        try:
            data, filename = levels.download_level(level_id)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return Response(
            content=data,
            media_type=_OCTET_STREAM,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post(
        "/api/levels/{level_id}/favorite",
        response_model=FavoriteResponse,
        tags=["Levels"],
    )
    def favorite_level(level_id: int, request: Request) -> FavoriteResponse:
        client = request.client.host if request.client is not None else "unknown"
        try:
            record, favorited = levels.toggle_favorite(level_id, client)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return FavoriteResponse(
            favorited=favorited, level=LevelResource(**record.to_payload())
        )

    @app.post(
        "/api/levels/{level_id}/report",
        response_model=LevelReportResponse,
        tags=["Levels"],
    )
    def report_level(
        level_id: int, payload: LevelReportRequest | None = None
    ) -> LevelReportResponse:
        if not resolved_settings.use_reporting:
            raise HTTPException(status_code=404, detail="Reporting is disabled")
        try:
            levels.report_level(level_id, payload.reason if payload else None)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return LevelReportResponse()

    @app.put(
        "/api/admin/levels/{level_id}",
        response_model=LevelResource,
        tags=["Admin"],
    )
    def edit_level(level_id: int, payload: LevelUpdateRequest) -> LevelResource:
        try:
            levels.edit_level(
                level_id, name=payload.name, sun=payload.sun, author=payload.author
            )
            listing = levels.get_listing(level_id)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except LevelRejectedError as exc:
            raise HTTPException(status_code=400, detail=exc.message) from exc
        except (LevelCodecError, RuntimeError) as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return _build_level_resource(listing)

    def _set_featured(level_id: int, featured: bool) -> LevelResource:
        try:
            record = levels.feature_level(level_id, featured)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return LevelResource(**record.to_payload())

    @app.post(
        "/api/admin/levels/{level_id}/feature",
        response_model=LevelResource,
        tags=["Admin"],
    )
    def feature_level(level_id: int) -> LevelResource:
        return _set_featured(level_id, True)

    @app.delete(
        "/api/admin/levels/{level_id}/feature",
        response_model=LevelResource,
        tags=["Admin"],
    )
    def unfeature_level(level_id: int) -> LevelResource:
        return _set_featured(level_id, False)

    @app.delete(
        "/api/admin/levels/{level_id}",
        response_model=None,
        status_code=204,
        tags=["Admin"],
    )
    def delete_level(level_id: int) -> None:
        try:
            levels.delete_level(level_id)
        except LevelNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Level not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    return app


__all__ = [
    "DecodedLevelResponse",
    "FavoriteResponse",
    "LevelListResponse",
    "LevelReportRequest",
    "LevelReportResponse",
    "LevelResource",
    "LevelUpdateRequest",
    "Pagination",
    "create_app",
]
