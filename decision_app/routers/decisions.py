import os
import shutil
import logging
from fastapi import APIRouter, Request, Depends, HTTPException, Form, UploadFile, File
from typing import Optional
from decision_app.core.errors import InvalidOptionError, InvalidStateError, UpstreamError, StorageError
from decision_app.services.attachment_service import build_context

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_user(request: Request):
    user = request.session.get("user")
    if not user:
        raise HTTPException(401, "Unauthorized")
    return user


def raise_http(e: Exception):
    if isinstance(e, InvalidOptionError):
        raise HTTPException(400, str(e))
    if isinstance(e, InvalidStateError):
        raise HTTPException(409, str(e))
    if isinstance(e, UpstreamError):
        raise HTTPException(502, "The decision assistant is unavailable. Please try again.")
    if isinstance(e, StorageError):
        raise HTTPException(503, "Could not access saved decisions. Please try again.")
    raise e


def load_tree(request: Request, tree_id: str, user: str):
    store = request.app.state.tree_store
    try:
        tree = store.get_by_id(tree_id)
    except StorageError as e:
        raise_http(e)
    if tree is None:
        raise HTTPException(404, "Decision not found")
    if tree.user_id != user:
        raise HTTPException(403, "Access denied")
    return tree


def save_tree(request: Request, tree):
    try:
        request.app.state.tree_store.save(tree)
    except StorageError as e:
        raise_http(e)
    return tree


@router.post("")
async def create_decision(
    request: Request,
    topic: str = Form(...),
    context: str = Form(""),
    file: Optional[UploadFile] = File(None),
    user=Depends(get_user)
):
    engine = request.app.state.engine
    advisor_service = request.app.state.advisor_service

    topic = topic.strip()
    if not topic:
        raise HTTPException(400, "Topic is required")

    attachments = []
    if file and file.filename:
        upload_dir = request.app.state.UPLOAD_DIR
        fpath = os.path.join(upload_dir, os.path.basename(file.filename))
        with open(fpath, "wb") as f:
            shutil.copyfileobj(file.file, f)
        try:
            attachments.append(request.app.state.attachment_service.extract_text(fpath))
        except (ValueError, RuntimeError) as e:
            raise HTTPException(400, str(e))
        finally:
            os.remove(fpath)

    try:
        tree = await engine.create_tree(
            topic,
            build_context(context, attachments),
            user,
            advisor_service.personalization_for(user)
        )
    except (UpstreamError, StorageError) as e:
        raise_http(e)

    save_tree(request, tree)
    return {"success": True, "tree": tree}


@router.get("")
async def list_decisions(request: Request, limit: Optional[int] = None, user=Depends(get_user)):
    try:
        trees = request.app.state.tree_store.list_by_owner(user, limit)
    except StorageError as e:
        raise_http(e)
    return {"trees": trees}


@router.get("/{tree_id}")
async def get_decision(tree_id: str, request: Request, user=Depends(get_user)):
    tree = load_tree(request, tree_id, user)
    return {"tree": tree, "current_node": tree.current_node}


@router.get("/{tree_id}/flowchart")
async def get_flowchart(tree_id: str, request: Request, user=Depends(get_user)):
    return load_tree(request, tree_id, user).to_flowchart()


@router.post("/{tree_id}/advance")
async def advance_decision(tree_id: str, request: Request, option_id: str = Form(...), user=Depends(get_user)):
    engine = request.app.state.engine
    tree = load_tree(request, tree_id, user)
    try:
        tree = await engine.advance(tree, option_id)
    except (InvalidOptionError, InvalidStateError, UpstreamError) as e:
        raise_http(e)
    save_tree(request, tree)
    return {
        "success": True,
        "tree": tree,
        "current_node": tree.current_node,
        "should_conclude": engine.should_conclude(tree)
    }


@router.post("/{tree_id}/back")
async def go_back(tree_id: str, request: Request, user=Depends(get_user)):
    engine = request.app.state.engine
    tree = load_tree(request, tree_id, user)
    updated = engine.go_back(tree)
    if updated is not tree:
        save_tree(request, updated)
    return {"success": True, "tree": updated, "current_node": updated.current_node}


@router.get("/{tree_id}/should-conclude")
async def should_conclude(tree_id: str, request: Request, conclude_now: bool = False, user=Depends(get_user)):
    tree = load_tree(request, tree_id, user)
    return {"should_conclude": request.app.state.engine.should_conclude(tree, conclude_now=conclude_now)}


@router.post("/{tree_id}/finalize")
async def finalize_decision(tree_id: str, request: Request, user=Depends(get_user)):
    tree = load_tree(request, tree_id, user)
    try:
        result = await request.app.state.engine.finalize(tree)
    except (InvalidStateError, UpstreamError) as e:
        raise_http(e)
    save_tree(request, result.updated_tree)
    return {
        "success": True,
        "decision": result.decision,
        "reflection": result.reflection,
        "tree": result.updated_tree
    }


@router.get("/{tree_id}/summary")
async def summarize_decision(tree_id: str, request: Request, user=Depends(get_user)):
    tree = load_tree(request, tree_id, user)
    return {"summary": await request.app.state.engine.summarize(tree)}


@router.delete("/{tree_id}")
async def delete_decision(tree_id: str, request: Request, user=Depends(get_user)):
    load_tree(request, tree_id, user)
    try:
        request.app.state.tree_store.delete_by_id(tree_id, owner_id=user)
    except StorageError as e:
        raise_http(e)
    return {"success": True}
