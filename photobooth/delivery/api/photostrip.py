# photobooth/delivery/api/photostrip.py
from contextlib import contextmanager
from fastapi import APIRouter, Request, Depends, HTTPException, Response, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from photobooth.delivery.schemas.body import (
    BackgroundIn,
    ExportRequest,
    ForegroundIn,
    LayoutChange,
    PhotoIn,
    PhotoList,
    PointerEvent,
    SessionCreate,
    StickerIn,
)
from photobooth.config.settings import settings
from photobooth.domain.backgrounds import GRADIENT_PRESETS, BackgroundChoice, get_gradient
from photobooth.domain.editor import LayoutLocked, PhotoLimitExceeded, PhotoStripEditor
from photobooth.domain.export import ExportStage
from photobooth.domain.image_pipeline import DecodeError
from photobooth.domain.layouts import LAYOUT_CATALOG
from photobooth.domain.models import Layout, Photo
from photobooth.domain.sessions import SessionStore
from photobooth.domain.stickers import Sticker
from photobooth.infrastructure.imaging import image_process
from photobooth.infrastructure.imaging.colors import describe_color
import secrets
import logging
import traceback
import asyncio

router = APIRouter()
security = HTTPBasic()
logger = logging.getLogger("uvicorn.error")

def verify_basic_auth(creds: HTTPBasicCredentials = Depends(security)) -> None:
    ok_user = secrets.compare_digest(creds.username, settings.BASIC_AUTH_USERNAME)
    ok_pass = secrets.compare_digest(creds.password, settings.BASIC_AUTH_PASSWORD)
    if not (ok_user and ok_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

ENDPOINT_TIMEOUT_SECONDS = 55

def get_store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "sessions", None)
    if store is None:
        logger.error("Session store not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready. Please try again in a moment.",
        )
    return store

def get_export_stage(request: Request) -> ExportStage:
    stage = getattr(request.app.state, "export_stage", None)
    return stage if stage is not None else ExportStage()

@contextmanager
def domain_errors(label: str):
    """Map domain exceptions onto HTTP status codes."""
    try:
        yield
    except HTTPException:
        raise
    except KeyError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.args[0] if e.args else "Not found")
    except (PhotoLimitExceeded, LayoutLocked) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (ValueError, DecodeError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"=== ENDPOINT ERROR for {label}: {e} ===\n{traceback.format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Terjadi kesalahan internal pada server.",
        )

# --- Serializers ---

def layout_out(layout: Layout) -> dict:
    data = layout.model_dump()
    data["max_photos"] = layout.max_photos
    return data

def sticker_out(sticker: Sticker) -> dict:
    return {
        "id": sticker.id,
        "x": sticker.x,
        "y": sticker.y,
        "width": sticker.width,
        "height": sticker.height,
        "rotation": sticker.rotation,
    }

def session_out(editor: PhotoStripEditor) -> dict:
    return {
        "session_id": editor.session_id,
        "layout": layout_out(editor.layout),
        "photos": [
            {"id": photo.id, "status": state}
            for photo, state in zip(editor.photos, editor.photo_status())
        ],
        "background": {
            "fill": editor.background.fill if isinstance(editor.background.fill, str) else editor.background.fill.id,
            "image": editor.background.image is not None,
        },
        "foreground": editor.foreground is not None,
        "stickers": [sticker_out(s) for s in editor.stickers],
        "selected_sticker_id": editor.selected_sticker_id,
        "can_undo": editor.engine.can_undo,
        "date_text": editor.date_text,
        "pending": editor.pending,
    }

# --- Catalog ---

@router.get("/layouts", dependencies=[Depends(verify_basic_auth)])
async def list_layouts():
    return {"layouts": [layout_out(layout) for layout in LAYOUT_CATALOG]}

@router.get("/gradients", dependencies=[Depends(verify_basic_auth)])
async def list_gradients():
    return {"gradients": [g.model_dump() for g in GRADIENT_PRESETS]}

@router.get("/colors/describe", dependencies=[Depends(verify_basic_auth)])
async def describe(value: str):
    with domain_errors("describe_color"):
        return describe_color(value)

# --- Sessions ---

@router.post("/sessions", status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_basic_auth)])
async def create_session(body: SessionCreate, store: SessionStore = Depends(get_store)):
    with domain_errors("create_session"):
        editor = store.create(layout_id=body.layout_id, date_text=body.date_text)
        return session_out(editor)

@router.get("/sessions/{sid}", dependencies=[Depends(verify_basic_auth)])
async def get_session(sid: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        return session_out(store.get(sid))

@router.delete("/sessions/{sid}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_basic_auth)])
async def delete_session(sid: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        store.delete(sid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.put("/sessions/{sid}/layout", dependencies=[Depends(verify_basic_auth)])
async def change_layout(sid: str, body: LayoutChange, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.set_layout(body.layout_id)
        return session_out(editor)

# --- Photos ---

def _to_photo(body: PhotoIn) -> Photo:
    return Photo(id=body.id, url=body.url) if body.id else Photo(url=body.url)

@router.post("/sessions/{sid}/photos", status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_basic_auth)])
async def add_photo(sid: str, body: PhotoIn, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.add_photo(_to_photo(body))
        return session_out(editor)

@router.put("/sessions/{sid}/photos", dependencies=[Depends(verify_basic_auth)])
async def replace_photos(sid: str, body: PhotoList, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.set_photos([_to_photo(p) for p in body.photos])
        return session_out(editor)

@router.delete("/sessions/{sid}/photos/{photo_id}", dependencies=[Depends(verify_basic_auth)])
async def remove_photo(sid: str, photo_id: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        if not editor.remove_photo(photo_id):
            raise KeyError(f"Foto {photo_id} tidak ditemukan.")
        return session_out(editor)

# --- Decorations ---

@router.put("/sessions/{sid}/background", dependencies=[Depends(verify_basic_auth)])
async def set_background(sid: str, body: BackgroundIn, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        if body.gradient_id:
            fill = get_gradient(body.gradient_id)
        else:
            fill = body.color or settings.DEFAULT_FRAME_COLOR
        editor.set_background(BackgroundChoice(fill=fill, image=body.image))
        return session_out(editor)

@router.put("/sessions/{sid}/foreground", dependencies=[Depends(verify_basic_auth)])
async def set_foreground(sid: str, body: ForegroundIn, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.set_foreground(body.image)
        return session_out(editor)

# --- Stickers ---

@router.post("/sessions/{sid}/stickers", status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_basic_auth)])
async def add_sticker(sid: str, body: StickerIn, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        sticker = await editor.add_sticker(body.image, body.x, body.y, body.width)
        return {"sticker": sticker_out(sticker), "session": session_out(editor)}

@router.delete("/sessions/{sid}/stickers/{sticker_id}", dependencies=[Depends(verify_basic_auth)])
async def delete_sticker(sid: str, sticker_id: int, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.delete_sticker(sticker_id)
        return session_out(editor)

@router.post("/sessions/{sid}/stickers/{sticker_id}/front", dependencies=[Depends(verify_basic_auth)])
async def bring_sticker_to_front(sid: str, sticker_id: int, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.reorder_sticker(sticker_id, front=True)
        return session_out(editor)

@router.post("/sessions/{sid}/stickers/{sticker_id}/back", dependencies=[Depends(verify_basic_auth)])
async def send_sticker_to_back(sid: str, sticker_id: int, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.reorder_sticker(sticker_id, front=False)
        return session_out(editor)

@router.post("/sessions/{sid}/stickers/{sticker_id}/duplicate", dependencies=[Depends(verify_basic_auth)])
async def duplicate_sticker(sid: str, sticker_id: int, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        if editor.duplicate_sticker(sticker_id) is None:
            raise KeyError(f"Sticker {sticker_id} tidak ditemukan.")
        return session_out(editor)

@router.post("/sessions/{sid}/pointer", dependencies=[Depends(verify_basic_auth)])
async def pointer(sid: str, event: PointerEvent, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        if event.type == "down":
            editor.pointer_down(event.x, event.y)
        elif event.type == "move":
            editor.pointer_move(event.x, event.y)
        elif event.type == "up":
            editor.pointer_up()
        else:
            editor.pointer_leave()
        state = session_out(editor)
        state["mode"] = editor.engine.mode.value
        return state

@router.post("/sessions/{sid}/undo", dependencies=[Depends(verify_basic_auth)])
async def undo(sid: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.undo()
        return session_out(editor)

@router.post("/sessions/{sid}/reset", dependencies=[Depends(verify_basic_auth)])
async def reset(sid: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        editor.reset()
        return session_out(editor)

# --- Rendering ---

@router.get("/sessions/{sid}/preview", dependencies=[Depends(verify_basic_auth)])
async def preview(sid: str, store: SessionStore = Depends(get_store)):
    with domain_errors(sid):
        editor = store.get(sid)
        state = editor.composite_state(include_selection=True, snapshot=True)
        loop = asyncio.get_running_loop()
        img = await loop.run_in_executor(store.executor, editor.renderer.redraw, editor.layout, state, 1.0)
        data, _ = image_process.encode_image(img, "png")
        return Response(content=data, media_type="image/png")

@router.post("/sessions/{sid}/export", dependencies=[Depends(verify_basic_auth)])
async def export(
    sid: str,
    body: ExportRequest,
    store: SessionStore = Depends(get_store),
    stage: ExportStage = Depends(get_export_stage),
):
    logger.info(f"=== EXPORT START for {sid} ===")
    with domain_errors(sid):
        editor = store.get(sid)
        if body.upload and not settings.cloudinary_enabled:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Cloudinary belum dikonfigurasi.",
            )
        try:
            result = await asyncio.wait_for(
                stage.export_async(editor, scale=body.scale, fmt=body.format, executor=store.executor),
                timeout=ENDPOINT_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"=== EXPORT TIMEOUT for {sid} after {ENDPOINT_TIMEOUT_SECONDS}s ===")
            raise HTTPException(status_code=504, detail="Export timed out")

        headers = {"Content-Disposition": f'attachment; filename="{result.filename}"'}
        if body.save:
            headers["X-Export-Path"] = await stage.save(result)
        if body.upload:
            result = await stage.upload(result, executor=store.executor)
            headers["X-Export-Url"] = result.url
        logger.info(f"=== EXPORT SUCCESS for {sid}: {result.filename} ===")
        return Response(content=result.data, media_type=result.content_type, headers=headers)
