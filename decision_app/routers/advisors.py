from fastapi import APIRouter, Request, Depends, HTTPException, Form
from decision_app.core.errors import StorageError
from decision_app.models.advisor import AdvisorFormData
from decision_app.routers.decisions import get_user
from decision_app.services.advisor_service import get_advisor_prompt, PREVIEW_USER

router = APIRouter()


@router.post("/preview")
async def preview_advisor(request: Request, data: AdvisorFormData, user=Depends(get_user)):
    return await request.app.state.advisor_service.create_custom_advisor(data, PREVIEW_USER)


@router.post("")
async def create_advisor(request: Request, data: AdvisorFormData, user=Depends(get_user)):
    result = await request.app.state.advisor_service.create_custom_advisor(data, user)
    if not result["success"]:
        raise HTTPException(500, result.get("error") or "Could not save advisor")
    return result


@router.get("/prompt")
async def advisor_prompt(request: Request, user=Depends(get_user)):
    try:
        stored = request.app.state.profile_store.get_custom_advisor(user)
    except StorageError as e:
        raise HTTPException(503, str(e))
    return {"prompt": get_advisor_prompt(stored), "is_set": bool(stored)}


@router.post("/personality")
async def set_personality(request: Request, personality_type: str = Form(...), user=Depends(get_user)):
    profile_store = request.app.state.profile_store
    try:
        profile_store.set_personality_type(user, personality_type)
        saved = profile_store.get_personality_type(user)
    except StorageError as e:
        raise HTTPException(503, str(e))
    return {"success": True, "personality_type": saved}
